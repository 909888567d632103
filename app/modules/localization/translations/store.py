"""Versioned translation store.

One document per ``(resource_type, resource_id, field_name, target_language,
version)``. Exactly one version of a key is active; a new version is created
by flipping ``is_active`` on the current row with a compare-and-set and then
inserting its successor, so concurrent writers on the same key serialize and
the loser retries against the new current row.
"""

import asyncio
import uuid
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from infrastructure.logging import get_module_logger
from infrastructure.persistence import BulkUpdate, BulkWriteResult, DocumentStore
from modules.localization.domain.enums import (
    PRIORITY_RANK,
    SERVED_STAGES,
    ReviewStatus,
    WorkflowStage,
)
from modules.localization.domain.errors import (
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    ProviderTimeoutError,
)
from modules.localization.domain.models import (
    TRANSLATIONS,
    FieldTranslation,
    Translation,
    TranslationKey,
    normalize_language_code,
    utc_now,
)
from modules.localization.domain.validation import validate_model

logger = get_module_logger()

SourceResolver = Callable[[str, str, str], Awaitable[Optional[str]]]

MAX_VERSION_RETRIES = 5
MAX_READ_RETRIES = 3
READ_RETRY_DELAY_SECONDS = 0.01

FIELD_VERSION_SORT = [("field_name", 1), ("version", -1)]


def _newest_per_key(docs: Iterable[Mapping[str, Any]]) -> List[Translation]:
    # docs arrive newest version first within each key
    seen = set()
    rows = []
    for doc in docs:
        ident = (doc["resource_id"], doc["field_name"], doc["target_language"])
        if ident not in seen:
            seen.add(ident)
            rows.append(Translation.model_validate(doc))
    return rows


def _pending_sort_key(row: Translation):
    # due_date asc (nulls last), priority desc, created_at asc
    due = row.workflow.due_date
    return (
        due is None,
        due.timestamp() if due else 0.0,
        -PRIORITY_RANK.get(row.workflow.priority, 0),
        row.created_at.timestamp(),
    )


class TranslationStore:
    """Persistence operations for Translation rows.

    Args:
        documents: Document store holding the ``translations`` collection
        source_resolver: Async callable returning the canonical source text of
            ``(resource_type, resource_id, field_name)``; used when a field has
            no active translation
        review_queue_timeout: Seconds allowed for the pending queue query
    """

    def __init__(
        self,
        documents: DocumentStore,
        source_resolver: Optional[SourceResolver] = None,
        review_queue_timeout: float = 5.0,
    ):
        self.documents = documents
        self.source_resolver = source_resolver
        self.review_queue_timeout = review_queue_timeout

    # -- reads -----------------------------------------------------------------

    async def get(self, translation_id: str) -> Translation:
        doc = await self.documents.get(TRANSLATIONS, translation_id)
        if doc is None:
            raise NotFoundError(f"Translation '{translation_id}' not found", field="id")
        return Translation.model_validate(doc)

    async def get_active(self, key: TranslationKey) -> Optional[Translation]:
        """Newest active row of ``key``.

        A concurrent ``create_new_version`` may leave a short window with no
        active row; the read retries a bounded number of times before giving
        up.
        """
        query = {**key.query(), "is_active": True}
        for attempt in range(MAX_READ_RETRIES + 1):
            doc = await self.documents.find_one(TRANSLATIONS, query, sort=[("version", -1)])
            if doc:
                return Translation.model_validate(doc)
            if attempt == MAX_READ_RETRIES or not await self.documents.count(
                TRANSLATIONS, key.query()
            ):
                return None
            logger.debug("translation_active_row_missing_retry", key=key.dedup_key, attempt=attempt)
            await asyncio.sleep(READ_RETRY_DELAY_SECONDS)
        return None

    async def get_served(self, key: TranslationKey) -> Optional[Translation]:
        """Newest approved or published version of ``key``.

        While a newer version is under review the previous approved version
        keeps being served.
        """
        doc = await self.documents.find_one(
            TRANSLATIONS,
            {**key.query(), "workflow.stage": {"$in": list(SERVED_STAGES)}},
            sort=[("version", -1)],
        )
        return Translation.model_validate(doc) if doc else None

    async def get_history(self, key: TranslationKey) -> List[Translation]:
        """Version chain of ``key``, newest first.

        The chain is followed through ``previous_version`` pointers starting
        at the newest row; traversal stops after as many hops as there are
        versions.
        """
        docs = await self.documents.find(TRANSLATIONS, key.query(), sort=[("version", -1)])
        if not docs:
            return []
        by_id = {doc["id"]: doc for doc in docs}
        chain: List[Translation] = []
        current: Optional[Dict[str, Any]] = docs[0]
        for _ in range(len(docs)):
            if current is None:
                break
            chain.append(Translation.model_validate(current))
            previous = current.get("previous_version")
            current = by_id.get(previous) if previous else None
        return chain

    async def get_field(
        self,
        resource_type: str,
        resource_id: str,
        field_name: str,
        target_language: str,
        approved_only: bool = True,
        fallback_to_source: bool = True,
    ) -> FieldTranslation:
        """Served text of one field.

        Without a usable row the source text (or None when
        ``fallback_to_source`` is off) is returned with a synthesized
        ``pending`` status.
        """
        key = self.make_key(resource_type, resource_id, field_name, target_language)
        row = await self.get_active(key)
        served = row
        if approved_only and (row is None or row.workflow.stage not in SERVED_STAGES):
            served = await self.get_served(key)
        if served is not None and served.translated_text:
            return FieldTranslation(
                **key.model_dump(),
                text=served.translated_text,
                status=served.workflow.stage,
                translation=served,
            )

        source = row.original_text if row else None
        if not fallback_to_source:
            source = None
        elif source is None and self.source_resolver is not None:
            source = await self.source_resolver(resource_type, resource_id, field_name)
        return FieldTranslation(
            **key.model_dump(),
            text=source,
            status=ReviewStatus.PENDING.value,
            is_fallback=True,
            translation=row,
        )

    async def get_for_resource(
        self,
        resource_type: str,
        resource_id: str,
        target_language: Optional[str] = None,
        approved_only: bool = False,
        include_history: bool = False,
        field_names: Optional[Iterable[str]] = None,
    ) -> List[Translation]:
        """Rows of a resource sorted by field name, newest version first.

        With ``approved_only`` each key contributes its newest served
        version, which may be an inactive one while its successor is under
        review.
        """
        query: Dict[str, Any] = {"resource_type": resource_type, "resource_id": resource_id}
        if target_language:
            query["target_language"] = normalize_language_code(target_language)
        if approved_only:
            query["workflow.stage"] = {"$in": list(SERVED_STAGES)}
        elif not include_history:
            query["is_active"] = True
        if field_names is not None:
            query["field_name"] = {"$in": list(field_names)}
        docs = await self.documents.find(TRANSLATIONS, query, sort=FIELD_VERSION_SORT)
        if approved_only and not include_history:
            return _newest_per_key(docs)
        return [Translation.model_validate(doc) for doc in docs]

    async def get_for_resources(
        self,
        resource_type: str,
        resource_ids: Sequence[str],
        target_language: str,
        approved_only: bool = True,
    ) -> List[Translation]:
        """Newest row per key across several resources (coded sub-collections)."""
        if not resource_ids:
            return []
        query: Dict[str, Any] = {
            "resource_type": resource_type,
            "resource_id": {"$in": list(resource_ids)},
            "target_language": normalize_language_code(target_language),
        }
        if approved_only:
            query["workflow.stage"] = {"$in": list(SERVED_STAGES)}
        else:
            query["is_active"] = True
        docs = await self.documents.find(
            TRANSLATIONS, query, sort=[("resource_id", 1)] + FIELD_VERSION_SORT
        )
        return _newest_per_key(docs)

    async def get_pending(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        limit: int = 50,
    ) -> List[Translation]:
        """Review queue: active rows awaiting review, most urgent first.

        Filters: ``target_language``, ``assignee``, ``priority``,
        ``resource_type``, ``stage``.

        Raises:
            ProviderTimeoutError: When the query exceeds the review queue timeout
        """
        filters = dict(filters or {})
        query: Dict[str, Any] = {
            "is_active": True,
            "quality.review_status": {
                "$in": [ReviewStatus.PENDING.value, ReviewStatus.NEEDS_REVIEW.value]
            },
            "workflow.stage": {
                "$in": [WorkflowStage.TRANSLATION.value, WorkflowStage.REVIEW.value]
            },
        }
        if filters.get("target_language"):
            query["target_language"] = normalize_language_code(filters["target_language"])
        if filters.get("assignee"):
            query["workflow.assignee"] = filters["assignee"]
        if filters.get("priority"):
            query["workflow.priority"] = filters["priority"]
        if filters.get("resource_type"):
            query["resource_type"] = filters["resource_type"]
        if filters.get("stage"):
            query["workflow.stage"] = filters["stage"]

        try:
            docs = await asyncio.wait_for(
                self.documents.find(TRANSLATIONS, query), timeout=self.review_queue_timeout
            )
        except asyncio.TimeoutError as exc:
            logger.warning("pending_queue_timeout", timeout_seconds=self.review_queue_timeout)
            raise ProviderTimeoutError(
                "Pending translations query timed out", details={"timeout": self.review_queue_timeout}
            ) from exc

        rows = sorted((Translation.model_validate(doc) for doc in docs), key=_pending_sort_key)
        return rows[:limit]

    async def available_languages(self, resource_type: str, resource_id: str) -> List[str]:
        """Target languages with at least one served (approved/published) row."""
        groups = await self.documents.group_count(
            TRANSLATIONS,
            {
                "resource_type": resource_type,
                "resource_id": resource_id,
                "workflow.stage": {"$in": list(SERVED_STAGES)},
            },
            by=["target_language"],
        )
        return sorted(g["key"]["target_language"] for g in groups)

    async def group_counts(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        by: Sequence[str] = ("resource_type", "target_language", "quality.review_status"),
        sums: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"is_active": True}
        query.update(filters or {})
        return await self.documents.group_count(TRANSLATIONS, query, by=list(by), sums=sums)

    # -- writes ----------------------------------------------------------------

    @staticmethod
    def make_key(
        resource_type: str, resource_id: str, field_name: str, target_language: str
    ) -> TranslationKey:
        return validate_model(
            TranslationKey,
            {
                "resource_type": resource_type,
                "resource_id": resource_id,
                "field_name": field_name,
                "target_language": target_language,
            },
        )

    async def insert(self, row: Translation) -> Translation:
        doc = row.to_document()
        doc["id"] = row.id or uuid.uuid4().hex
        stored = await self.documents.insert(TRANSLATIONS, doc)
        return Translation.model_validate(stored)

    async def upsert_draft(
        self,
        key: TranslationKey,
        original_text: str,
        author: str,
        source_language: str,
        **attributes: Any,
    ) -> Translation:
        """Create or reopen the active row of ``key`` for new source text.

        - no active row: insert version 1 at stage ``draft``
        - active row in draft/translation/review: replace the source text in
          place and put the row back in front of a reviewer
        - active approved/published row whose source changed: new version

        ``attributes`` may carry ``workflow`` and ``context`` fields.
        """
        source_language = normalize_language_code(source_language)
        if source_language == key.target_language:
            raise InvalidInputError(
                "Source and target languages must be different", field="target_language"
            )

        current = await self.get_active(key)
        if current is None:
            row = validate_model(
                Translation,
                {
                    **key.query(),
                    "source_language": source_language,
                    "original_text": original_text,
                    "created_by": author,
                    "updated_by": author,
                    **attributes,
                },
            )
            created = await self.insert(row)
            logger.info(
                "translation_draft_created",
                translation_id=created.id,
                key=key.dedup_key,
            )
            return created

        if current.original_text == original_text:
            return current

        if current.workflow.stage in SERVED_STAGES:
            return await self.create_new_version(
                current, None, author, original_text=original_text
            )

        changes: Dict[str, Any] = {
            "original_text": original_text,
            "quality.review_status": ReviewStatus.PENDING.value,
        }
        if current.workflow.stage == WorkflowStage.REVIEW.value:
            changes["workflow.stage"] = WorkflowStage.TRANSLATION.value
        updated = await self.update_row(current, changes, author)
        logger.info("translation_source_updated", translation_id=current.id, key=key.dedup_key)
        return updated

    async def create_new_version(
        self,
        current: Translation,
        translated_text: Optional[str],
        author: str,
        original_text: Optional[str] = None,
        **overrides: Any,
    ) -> Translation:
        """Supersede ``current`` with ``version + 1``.

        The outgoing row is deactivated with a compare-and-set on
        ``is_active``; a lost race re-reads the current row and retries. If
        the successor cannot be inserted the outgoing row is reactivated.

        Raises:
            ConflictError: If the retries are exhausted
        """
        row = current
        for attempt in range(MAX_VERSION_RETRIES):
            flipped = await self.documents.update(
                TRANSLATIONS,
                row.id,
                {"$set": {"is_active": False, "updated_at": utc_now(), "updated_by": author}},
                expected={"is_active": True},
            )
            if flipped is not None:
                break
            logger.info(
                "translation_version_race_lost",
                translation_id=row.id,
                key=row.key.dedup_key,
                attempt=attempt,
            )
            latest = await self.get_active(row.key)
            if latest is None:
                raise ConflictError(
                    "Translation has no active version", field="is_active"
                )
            row = latest
        else:
            raise ConflictError(
                f"Could not create a new version of '{current.key.dedup_key}'",
                field="version",
            )

        now = utc_now()
        data = row.to_document()
        data.pop("id", None)
        data.update(
            version=row.version + 1,
            previous_version=row.id,
            translated_text=translated_text,
            original_text=original_text if original_text is not None else row.original_text,
            is_active=True,
            created_by=author,
            updated_by=author,
            created_at=now,
            updated_at=now,
        )
        data["quality"].update(
            review_status=ReviewStatus.PENDING.value,
            reviewer=None,
            reviewed_at=None,
            review_notes=None,
        )
        data["workflow"]["stage"] = WorkflowStage.TRANSLATION.value
        for name, value in overrides.items():
            if isinstance(value, Mapping) and isinstance(data.get(name), dict):
                data[name].update(value)
            else:
                data[name] = value

        try:
            successor = await self.insert(validate_model(Translation, data))
        except Exception:
            await self.documents.update(
                TRANSLATIONS, row.id, {"$set": {"is_active": True}}, expected={"is_active": False}
            )
            logger.error("translation_version_insert_failed", translation_id=row.id)
            raise

        logger.info(
            "translation_version_created",
            translation_id=successor.id,
            previous_version=row.id,
            key=row.key.dedup_key,
            old_version=row.version,
            new_version=successor.version,
        )
        return successor

    async def update_row(
        self,
        row: Translation,
        changes: Mapping[str, Any],
        author: Optional[str] = None,
        expect_stage: Optional[Sequence[str]] = None,
    ) -> Translation:
        """Apply dotted-path ``changes`` to an active row.

        ``expect_stage`` makes the update a compare-and-set on the row's
        workflow stage (and active flag).

        Raises:
            ConflictError: If the row moved on in the meantime
        """
        update: Dict[str, Any] = dict(changes)
        update["updated_at"] = utc_now()
        if author:
            update["updated_by"] = author

        expected: Dict[str, Any] = {"is_active": True}
        if expect_stage is not None:
            expected["workflow.stage"] = {"$in": list(expect_stage)}

        doc = await self.documents.update(TRANSLATIONS, row.id, {"$set": update}, expected=expected)
        if doc is None:
            raise ConflictError(
                f"Translation '{row.id}' changed concurrently or is no longer active",
                field="workflow.stage",
            )
        try:
            return Translation.model_validate(doc)
        except ValueError as exc:
            raise InternalError(f"Stored translation '{row.id}' is invalid") from exc

    async def bulk_update(self, operations: Sequence[BulkUpdate]) -> BulkWriteResult:
        """Apply many single-row updates in one batch (matched/modified counts)."""
        result = await self.documents.bulk_update(TRANSLATIONS, operations)
        logger.info(
            "translation_bulk_update_completed",
            operations=len(operations),
            matched=result.matched,
            modified=result.modified,
        )
        return result

    async def track_usage(self, row: Translation, context: Optional[str] = None) -> None:
        """Bump impressions; allowed on inactive rows too."""
        update: Dict[str, Any] = {
            "$inc": {"usage.impressions": 1},
            "$set": {"usage.last_used": utc_now()},
        }
        if context:
            update["$addToSet"] = {"usage.contexts": context}
        await self.documents.update(TRANSLATIONS, row.id, update)
