"""Translation workflow state machine.

    draft --submit--> translation --complete--> review --approve--> approved --publish--> published
                          ^                         |
                          +--------- reject --------+

``approve`` is also accepted straight from ``translation`` when the row has
text and is still pending or flagged ``needs_review``. Approved and
published rows never change in place: new text creates a new version.

Every transition is a compare-and-set on the row's stage, so two reviewers
acting on the same row cannot both succeed.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from infrastructure.logging import get_module_logger
from infrastructure.persistence import BulkItemOutcome, BulkUpdate
from modules.localization.domain.enums import (
    SERVED_STAGES,
    ReviewAction,
    ReviewStatus,
    TranslationMethod,
    WorkflowPriority,
    WorkflowStage,
)
from modules.localization.domain.errors import (
    InvalidInputError,
    LocalizationError,
    NotFoundError,
    WorkflowStateError,
)
from modules.localization.domain.models import Language, Translation, utc_now
from modules.localization.languages.registry import LanguageRegistry
from modules.localization.providers.base import ProviderTranslation
from modules.localization.translations.store import TranslationStore
from modules.localization.workflow.assignments import AssignmentRules
from modules.localization.workflow.queue import TranslationWorkQueue

logger = get_module_logger()

SYSTEM_REVIEWER = "system"
APPROVED_QUALITY_SCORE = 80

DRAFT = WorkflowStage.DRAFT.value
TRANSLATION = WorkflowStage.TRANSLATION.value
REVIEW = WorkflowStage.REVIEW.value
APPROVED = WorkflowStage.APPROVED.value
PUBLISHED = WorkflowStage.PUBLISHED.value

Listener = Callable[[Translation], Awaitable[None]]


def _edited_method(row: Translation) -> str:
    if row.translation_method == TranslationMethod.AUTOMATIC.value:
        return TranslationMethod.HYBRID.value
    return row.translation_method


def approval_changes(row: Translation, reviewer: str, notes: Optional[str], now: datetime) -> dict:
    return {
        "quality.review_status": ReviewStatus.APPROVED.value,
        "quality.reviewer": reviewer,
        "quality.reviewed_at": now,
        "quality.review_notes": notes,
        "quality.quality_score": max(row.quality.quality_score, APPROVED_QUALITY_SCORE),
        "workflow.stage": APPROVED,
    }


def rejection_changes(reviewer: str, notes: str, now: datetime) -> dict:
    return {
        "quality.review_status": ReviewStatus.REJECTED.value,
        "quality.reviewer": reviewer,
        "quality.reviewed_at": now,
        "quality.review_notes": notes,
        "workflow.stage": TRANSLATION,
    }


def check_approvable(row: Translation) -> None:
    stage = row.workflow.stage
    status = row.quality.review_status
    if stage == REVIEW:
        return
    if stage == TRANSLATION:
        if status == ReviewStatus.REJECTED.value:
            raise WorkflowStateError(
                "A rejected translation must be resubmitted before approval",
                field="quality.review_status",
            )
        if not row.translated_text:
            raise WorkflowStateError(
                "Cannot approve a translation without text", field="translated_text"
            )
        if status in (ReviewStatus.PENDING.value, ReviewStatus.NEEDS_REVIEW.value):
            return
    raise WorkflowStateError(
        f"Cannot approve a translation in stage '{stage}'", field="workflow.stage"
    )


def check_rejectable(row: Translation) -> None:
    if row.workflow.stage not in (TRANSLATION, REVIEW):
        raise WorkflowStateError(
            f"Cannot reject a translation in stage '{row.workflow.stage}'",
            field="workflow.stage",
        )


class WorkflowEngine:
    """Drives Translation rows through the review workflow.

    Args:
        store: Translation store
        languages: Language registry (targets, thresholds, review policy)
        queue: Auto-translation work queue
        assignments: Rules assigning submitted rows to translators
        review_required_by_default: When True automatic output always waits
            for a human reviewer
        default_threshold: Confidence threshold for languages that are not
            registered
    """

    def __init__(
        self,
        store: TranslationStore,
        languages: LanguageRegistry,
        queue: TranslationWorkQueue,
        assignments: Optional[AssignmentRules] = None,
        review_required_by_default: bool = True,
        default_threshold: float = 0.8,
    ):
        self.store = store
        self.languages = languages
        self.queue = queue
        self.assignments = assignments or AssignmentRules()
        self.review_required_by_default = review_required_by_default
        self.default_threshold = default_threshold
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        """Register a coroutine called with every row whose state changed."""
        self._listeners.append(listener)

    async def _notify(self, row: Translation) -> None:
        for listener in self._listeners:
            await listener(row)

    async def _load_active(self, translation_id: str) -> Translation:
        row = await self.store.get(translation_id)
        if not row.is_active:
            raise WorkflowStateError(
                f"Translation '{translation_id}' was superseded by a newer version",
                field="is_active",
            )
        return row

    # -- transitions -----------------------------------------------------------

    async def submit(
        self, translation_id: str, author: str, translated_text: Optional[str] = None
    ) -> Translation:
        """Hand a row to translation, optionally with the translator's text.

        On an approved or published row the text starts a new version.
        """
        row = await self._load_active(translation_id)
        stage = row.workflow.stage
        now = utc_now()

        if stage in SERVED_STAGES:
            if not translated_text:
                raise WorkflowStateError(
                    "Approved translations change through a new version; provide the new text",
                    field="translated_text",
                )
            successor = await self.store.create_new_version(
                row,
                translated_text,
                author,
                translation_method=_edited_method(row),
            )
            changes = self.assignments.changes_for(successor, now)
            if changes:
                successor = await self.store.update_row(successor, changes, author)
            await self._notify(successor)
            return successor

        if stage == DRAFT:
            expect = [DRAFT]
        elif stage == TRANSLATION and row.quality.review_status == ReviewStatus.REJECTED.value:
            expect = [TRANSLATION]
        else:
            raise WorkflowStateError(
                f"Cannot submit a translation in stage '{stage}'", field="workflow.stage"
            )

        changes: Dict[str, Any] = {
            "workflow.stage": TRANSLATION,
            "quality.review_status": ReviewStatus.PENDING.value,
        }
        if translated_text:
            changes["translated_text"] = translated_text
            changes["translation_method"] = _edited_method(row)
        changes.update(self.assignments.changes_for(row, now))

        updated = await self.store.update_row(row, changes, author, expect_stage=expect)
        logger.info(
            "translation_submitted",
            translation_id=row.id,
            key=row.key.dedup_key,
            assignee=updated.workflow.assignee,
        )
        await self._notify(updated)
        return updated

    async def complete(
        self, translation_id: str, author: str, translated_text: Optional[str] = None
    ) -> Translation:
        """Send a translated row to review."""
        row = await self._load_active(translation_id)
        if row.workflow.stage != TRANSLATION:
            raise WorkflowStateError(
                f"Cannot complete a translation in stage '{row.workflow.stage}'",
                field="workflow.stage",
            )
        if not (translated_text or row.translated_text):
            raise InvalidInputError(
                "A translated text is required to complete a translation",
                field="translated_text",
            )

        changes: Dict[str, Any] = {"workflow.stage": REVIEW}
        if translated_text:
            changes["translated_text"] = translated_text
            changes["translation_method"] = _edited_method(row)
        if row.quality.review_status == ReviewStatus.REJECTED.value:
            changes["quality.review_status"] = ReviewStatus.PENDING.value

        updated = await self.store.update_row(row, changes, author, expect_stage=[TRANSLATION])
        logger.info("translation_completed", translation_id=row.id, key=row.key.dedup_key)
        await self._notify(updated)
        return updated

    async def approve(
        self, translation_id: str, reviewer: str, notes: Optional[str] = None
    ) -> Translation:
        if not reviewer:
            raise InvalidInputError("A reviewer is required", field="reviewer")
        row = await self._load_active(translation_id)
        check_approvable(row)
        updated = await self.store.update_row(
            row,
            approval_changes(row, reviewer, notes, utc_now()),
            reviewer,
            expect_stage=[TRANSLATION, REVIEW],
        )
        logger.info(
            "translation_approved",
            translation_id=row.id,
            key=row.key.dedup_key,
            reviewer=reviewer,
        )
        await self._notify(updated)
        return updated

    async def reject(self, translation_id: str, reviewer: str, notes: str) -> Translation:
        if not reviewer:
            raise InvalidInputError("A reviewer is required", field="reviewer")
        if not notes or not notes.strip():
            raise InvalidInputError("Rejection notes are required", field="notes")
        row = await self._load_active(translation_id)
        check_rejectable(row)
        updated = await self.store.update_row(
            row,
            rejection_changes(reviewer, notes, utc_now()),
            reviewer,
            expect_stage=[TRANSLATION, REVIEW],
        )
        logger.info(
            "translation_rejected",
            translation_id=row.id,
            key=row.key.dedup_key,
            reviewer=reviewer,
        )
        await self._notify(updated)
        return updated

    async def publish(self, translation_id: str, author: str) -> Translation:
        row = await self._load_active(translation_id)
        if row.workflow.stage != APPROVED:
            raise WorkflowStateError(
                f"Only approved translations can be published (stage '{row.workflow.stage}')",
                field="workflow.stage",
            )
        updated = await self.store.update_row(
            row, {"workflow.stage": PUBLISHED}, author, expect_stage=[APPROVED]
        )
        logger.info("translation_published", translation_id=row.id, key=row.key.dedup_key)
        await self._notify(updated)
        return updated

    async def bulk_review(
        self,
        translation_ids: Sequence[str],
        action: str,
        reviewer: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Apply one decision to many rows in a single batch.

        Returns:
            ``{"matched", "modified", "outcomes": [{"id", "matched",
            "modified", "error"}]}``; ineligible rows are reported per item
            and never abort the batch.
        """
        try:
            decision = ReviewAction(action)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown review action '{action}'", field="action") from exc
        if not reviewer:
            raise InvalidInputError("A reviewer is required", field="reviewer")
        if decision == ReviewAction.REJECT and not (notes and notes.strip()):
            raise InvalidInputError("Rejection notes are required", field="notes")

        now = utc_now()
        operations: List[BulkUpdate] = []
        rejected: List[BulkItemOutcome] = []
        for translation_id in dict.fromkeys(translation_ids):
            try:
                row = await self._load_active(translation_id)
                if decision == ReviewAction.APPROVE:
                    check_approvable(row)
                    changes = approval_changes(row, reviewer, notes, now)
                else:
                    check_rejectable(row)
                    changes = rejection_changes(reviewer, notes or "", now)
            except (NotFoundError, WorkflowStateError) as e:
                rejected.append(
                    BulkItemOutcome(doc_id=translation_id, matched=False, modified=False, error=e.message)
                )
                continue
            changes.update(updated_at=now, updated_by=reviewer)
            operations.append(
                BulkUpdate(
                    doc_id=translation_id,
                    update={"$set": changes},
                    expected={"is_active": True, "workflow.stage": {"$in": [TRANSLATION, REVIEW]}},
                )
            )

        result = await self.store.bulk_update(operations) if operations else None
        outcomes = list(result.outcomes) if result else []
        for outcome in outcomes:
            if outcome.modified:
                await self._notify(await self.store.get(outcome.doc_id))
        outcomes.extend(rejected)

        logger.info(
            "translation_bulk_review_completed",
            action=decision.value,
            reviewer=reviewer,
            requested=len(translation_ids),
            matched=result.matched if result else 0,
            modified=result.modified if result else 0,
            ineligible=len(rejected),
        )
        return {
            "matched": result.matched if result else 0,
            "modified": result.modified if result else 0,
            "outcomes": [
                {
                    "id": o.doc_id,
                    "matched": o.matched,
                    "modified": o.modified,
                    "error": o.error,
                }
                for o in outcomes
            ],
        }

    # -- opening rows ----------------------------------------------------------

    def _should_auto_translate(self, language: Language, field_name: str, requested: bool) -> bool:
        config = language.translation.auto_translate
        if field_name in config.exclude_fields:
            return False
        return requested or config.enabled

    async def open_translations(
        self,
        resource_type: str,
        resource_id: str,
        fields: Mapping[str, Optional[str]],
        source_language: str,
        author: str,
        targets: Optional[Sequence[Language]] = None,
        priority: str = WorkflowPriority.MEDIUM.value,
        due_date: Optional[datetime] = None,
        auto_translate: bool = False,
        tags: Iterable[str] = (),
    ) -> List[Translation]:
        """Create or reopen rows for changed fields in every target language.

        Rows start (or restart) pending; when automatic translation applies a
        work item is queued per row.
        """
        if targets is None:
            targets = await self.languages.list_active()
        source = source_language.upper()
        opened: List[Translation] = []
        queued = 0
        for field_name, text in fields.items():
            if text is None or not str(text).strip():
                continue
            for language in targets:
                if language.code == source:
                    continue
                key = self.store.make_key(resource_type, resource_id, field_name, language.code)
                row = await self.store.upsert_draft(
                    key,
                    str(text),
                    author,
                    source,
                    workflow={"priority": priority, "due_date": due_date, "tags": list(tags)},
                )
                opened.append(row)
                # human edits are never overwritten by provider output
                machine_owned = (
                    not row.translated_text
                    or row.translation_method == TranslationMethod.AUTOMATIC.value
                )
                if (
                    machine_owned
                    and row.workflow.stage in (DRAFT, TRANSLATION)
                    and self._should_auto_translate(language, field_name, auto_translate)
                ):
                    await self.queue.push(row, priority)
                    queued += 1

        logger.info(
            "translations_opened",
            resource_type=resource_type,
            resource_id=resource_id,
            fields=len(fields),
            rows=len(opened),
            queued=queued,
        )
        return opened

    async def initialize_resource(
        self,
        resource_type: str,
        resource_id: str,
        fields: Mapping[str, Optional[str]],
        source_language: str,
        author: str,
        target_languages: Optional[Sequence[str]] = None,
        **options: Any,
    ) -> List[Translation]:
        targets = None
        if target_languages is not None:
            targets = [await self.languages.get_by_code(code) for code in target_languages]
        return await self.open_translations(
            resource_type,
            resource_id,
            fields,
            source_language,
            author,
            targets=targets,
            **options,
        )

    async def bulk_initialize(
        self, items: Sequence[Mapping[str, Any]], author: str
    ) -> List[Dict[str, Any]]:
        """Initialize many resources; failures are reported per resource."""
        results = []
        for item in items:
            try:
                rows = await self.initialize_resource(
                    item["resource_type"],
                    item["resource_id"],
                    item["fields"],
                    item.get("source_language", "EN"),
                    author,
                    target_languages=item.get("target_languages"),
                    priority=item.get("priority", WorkflowPriority.MEDIUM.value),
                    auto_translate=bool(item.get("auto_translate", False)),
                )
                results.append(
                    {"resource_id": item["resource_id"], "success": True, "rows": len(rows)}
                )
            except LocalizationError as e:
                logger.warning(
                    "bulk_initialize_item_failed",
                    resource_id=item.get("resource_id"),
                    error=e.message,
                )
                results.append(
                    {"resource_id": item.get("resource_id"), "success": False, "error": e.to_dict()}
                )
        return results

    async def get_workflow_status(self, resource_type: str, resource_id: str) -> Dict[str, Any]:
        """Per-language row counts by stage and approval progress."""
        rows = await self.store.get_for_resource(resource_type, resource_id)
        languages: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            entry = languages.setdefault(
                row.target_language,
                {"total": 0, "stages": {stage.value: 0 for stage in WorkflowStage}},
            )
            entry["total"] += 1
            entry["stages"][row.workflow.stage] += 1
        served_total = 0
        for entry in languages.values():
            served = entry["stages"][APPROVED] + entry["stages"][PUBLISHED]
            served_total += served
            entry["progress"] = round(served / entry["total"] * 100) if entry["total"] else 0
        return {
            "resource_type": resource_type,
            "resource_id": resource_id,
            "languages": languages,
            "overall_progress": round(served_total / len(rows) * 100) if rows else 0,
        }

    # -- automatic translation results -----------------------------------------

    async def apply_provider_result(
        self, row: Translation, result: ProviderTranslation
    ) -> Translation:
        """Write provider output onto a row at stage ``translation``.

        Confidence below the language threshold tags the row
        ``needs_review``. Without any review requirement a confident result
        is approved by the ``system`` reviewer.
        """
        language = await self.languages.find(row.target_language)
        threshold = (
            language.translation.auto_translate.threshold if language else self.default_threshold
        )
        confident = result.confidence >= threshold
        updated = await self.store.update_row(
            row,
            {
                "translated_text": result.translated_text,
                "translation_method": TranslationMethod.AUTOMATIC.value,
                "provider": result.provider,
                "quality.confidence": result.confidence,
                "quality.review_status": (
                    ReviewStatus.PENDING.value if confident else ReviewStatus.NEEDS_REVIEW.value
                ),
                "workflow.stage": TRANSLATION,
            },
            SYSTEM_REVIEWER,
            expect_stage=[DRAFT, TRANSLATION],
        )
        logger.info(
            "auto_translation_applied",
            translation_id=row.id,
            key=row.key.dedup_key,
            provider=result.provider,
            confidence=result.confidence,
            needs_review=not confident,
        )
        if language:
            await self.languages.record_translations(language.code)

        review_required = self.review_required_by_default or (
            language is None or language.translation.quality.require_human_review
        )
        minimum = language.translation.quality.minimum_confidence if language else threshold
        if not review_required and confident and result.confidence >= minimum:
            return await self.approve(updated.id, SYSTEM_REVIEWER, notes="auto-approved")

        await self._notify(updated)
        return updated
