"""DynamoDB-backed document store for multi-instance deployments.

Each collection maps to one table keyed by ``id``. Every item carries a
hidden ``_rev`` counter; updates read the item, evaluate the ``expected``
filter and the update document with the shared query helpers, then write
back with a conditional put on ``_rev``. A lost race re-reads and retries,
so compare-and-set and $-operator updates behave exactly like the in-memory
backend.

Table Schema:
    PK: id (String)
    Attributes: the document fields (floats stored as Decimal, datetimes as
    ISO-8601 strings), _rev (Number)

Query patterns that need secondary indexes are listed in ``INDEXES``; the
backend evaluates filters client-side over paginated scans.
"""

import asyncio
import json
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from infrastructure.logging import get_module_logger
from infrastructure.operations import classify_aws_error
from infrastructure.persistence.query import (
    SortSpec,
    apply_update,
    group_documents,
    matches,
    sort_documents,
)
from infrastructure.persistence.store import (
    BulkItemOutcome,
    BulkUpdate,
    BulkWriteResult,
    DocumentStoreError,
    DuplicateDocumentError,
)

logger = get_module_logger()

REVISION_FIELD = "_rev"
MAX_WRITE_RETRIES = 5

# Access patterns per collection; attributes used in key conditions once
# projected to top-level GSIs.
INDEXES: dict[str, list[tuple[str, ...]]] = {
    "languages": [
        ("code", "is_active"),
        ("locale",),
        ("channel_mappings.channel",),
        ("is_default", "is_active"),
    ],
    "translations": [
        ("resource_type", "resource_id", "field_name", "target_language", "is_active"),
        ("source_language", "target_language"),
        ("quality.review_status", "workflow.stage"),
        ("workflow.assignee", "workflow.due_date"),
        ("created_at",),
    ],
    "ui_translations": [
        ("namespace", "key"),
        ("namespace", "is_active"),
        ("translations.language", "translations.status"),
    ],
}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Unsupported type for DynamoDB: {type(value).__name__}")


def to_item(value: Any) -> Any:
    """Convert a document (or filter value) into DynamoDB-compatible types."""
    return json.loads(json.dumps(value, default=_json_default), parse_float=Decimal)


def from_item(value: Any) -> Any:
    """Convert DynamoDB types back into plain Python values."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_item(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_item(v) for v in value]
    return value


def _plain(value: Any) -> Any:
    return from_item(to_item(value))


class DynamoDBDocumentStore:
    """DynamoDB implementation of the DocumentStore protocol.

    boto3 is synchronous; every call runs in a worker thread through
    ``asyncio.to_thread`` so request coroutines keep suspending at I/O.

    Args:
        table_prefix: Prefix prepended to collection names
        region_name: AWS region
        endpoint_url: Optional endpoint override (DynamoDB Local)
        resource: Optional pre-built boto3 DynamoDB resource (tests)
    """

    def __init__(
        self,
        table_prefix: str = "",
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        resource: Any = None,
    ) -> None:
        self.table_prefix = table_prefix
        self._resource = resource or boto3.resource(
            "dynamodb", region_name=region_name, endpoint_url=endpoint_url
        )
        self._tables: dict[str, Any] = {}
        logger.info(
            "dynamodb_document_store_initialized",
            table_prefix=table_prefix,
            region=region_name,
        )

    def _table(self, collection: str) -> Any:
        table = self._tables.get(collection)
        if table is None:
            table = self._resource.Table(f"{self.table_prefix}{collection}")
            self._tables[collection] = table
        return table

    async def _call(self, operation: str, func, *args, **kwargs) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except (ClientError, BotoCoreError) as exc:
            result = classify_aws_error(exc)
            if result.error_code == "CONDITION_FAILED":
                raise
            logger.error(
                "dynamodb_operation_failed",
                operation=operation,
                error_code=result.error_code,
                error=result.message,
            )
            raise DocumentStoreError(result.message, result) from exc

    @staticmethod
    def _is_condition_failure(exc: ClientError) -> bool:
        return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"

    def create_tables(self, collections: Sequence[str]) -> None:
        """Create missing tables (PAY_PER_REQUEST, PK ``id``)."""
        client = self._resource.meta.client
        existing = set(client.list_tables().get("TableNames", []))
        for collection in collections:
            name = f"{self.table_prefix}{collection}"
            if name in existing:
                continue
            client.create_table(
                TableName=name,
                KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST",
            )
            logger.info("dynamodb_table_created", table_name=name)

    async def _scan(self, collection: str) -> list[dict[str, Any]]:
        table = self._table(collection)
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {}
        while True:
            response = await self._call("scan", table.scan, **kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return [self._strip(from_item(item)) for item in items]

    @staticmethod
    def _strip(document: dict[str, Any]) -> dict[str, Any]:
        document.pop(REVISION_FIELD, None)
        return document

    async def insert(self, collection: str, document: Mapping[str, Any]) -> dict[str, Any]:
        doc = dict(document)
        doc.setdefault("id", uuid.uuid4().hex)
        item = to_item(doc)
        item[REVISION_FIELD] = 1
        try:
            await self._call(
                "put_item",
                self._table(collection).put_item,
                Item=item,
                ConditionExpression=Attr("id").not_exists(),
            )
        except ClientError as exc:
            if self._is_condition_failure(exc):
                raise DuplicateDocumentError(collection, doc["id"]) from exc
            raise
        return self._strip(from_item(item))

    async def _get_raw(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        response = await self._call(
            "get_item", self._table(collection).get_item, Key={"id": doc_id}, ConsistentRead=True
        )
        item = response.get("Item")
        return from_item(item) if item else None

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        raw = await self._get_raw(collection, doc_id)
        return self._strip(raw) if raw else None

    async def find(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        plain_query = _plain(query) if query else None
        found = [doc for doc in await self._scan(collection) if matches(doc, plain_query)]
        found = sort_documents(found, sort)
        if skip:
            found = found[skip:]
        if limit is not None:
            found = found[:limit]
        return found

    async def find_one(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
    ) -> Optional[dict[str, Any]]:
        found = await self.find(collection, query, sort=sort, limit=1)
        return found[0] if found else None

    async def _update_once(
        self,
        collection: str,
        doc_id: str,
        update: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]],
    ) -> tuple[bool, bool, Optional[dict[str, Any]]]:
        for _ in range(MAX_WRITE_RETRIES):
            raw = await self._get_raw(collection, doc_id)
            if raw is None:
                return False, False, None
            revision = raw.pop(REVISION_FIELD, 0)
            if expected and not matches(raw, _plain(expected)):
                return False, False, None
            updated = _plain(apply_update(raw, update))
            updated["id"] = doc_id
            if updated == raw:
                return True, False, updated
            item = to_item(updated)
            item[REVISION_FIELD] = revision + 1
            try:
                await self._call(
                    "put_item",
                    self._table(collection).put_item,
                    Item=item,
                    ConditionExpression=Attr(REVISION_FIELD).eq(revision),
                )
            except ClientError as exc:
                if self._is_condition_failure(exc):
                    logger.debug("dynamodb_revision_conflict", collection=collection, doc_id=doc_id)
                    continue
                raise
            return True, True, updated
        raise DocumentStoreError(
            f"Concurrent modification of '{doc_id}' in '{collection}' did not settle"
        )

    async def update(
        self,
        collection: str,
        doc_id: str,
        update: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        matched, _, updated = await self._update_once(collection, doc_id, update, expected)
        return updated if matched else None

    async def update_many(
        self,
        collection: str,
        query: Mapping[str, Any],
        update: Mapping[str, Any],
    ) -> int:
        modified = 0
        for doc in await self.find(collection, query):
            _, changed, _ = await self._update_once(collection, doc["id"], update, query)
            modified += int(changed)
        return modified

    async def bulk_update(
        self, collection: str, operations: Sequence[BulkUpdate]
    ) -> BulkWriteResult:
        result = BulkWriteResult()
        for op in operations:
            try:
                matched, modified, _ = await self._update_once(
                    collection, op.doc_id, op.update, op.expected
                )
                outcome = BulkItemOutcome(doc_id=op.doc_id, matched=matched, modified=modified)
            except DocumentStoreError as exc:
                outcome = BulkItemOutcome(
                    doc_id=op.doc_id, matched=False, modified=False, error=str(exc)
                )
            result.matched += int(outcome.matched)
            result.modified += int(outcome.modified)
            result.outcomes.append(outcome)
        return result

    async def delete(self, collection: str, doc_id: str) -> bool:
        response = await self._call(
            "delete_item",
            self._table(collection).delete_item,
            Key={"id": doc_id},
            ReturnValues="ALL_OLD",
        )
        return bool(response.get("Attributes"))

    async def count(self, collection: str, query: Optional[Mapping[str, Any]] = None) -> int:
        return len(await self.find(collection, query))

    async def group_count(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]],
        by: Sequence[str],
        unwind: Optional[str] = None,
        sums: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> list[dict[str, Any]]:
        docs = await self.find(collection, query)
        return group_documents(docs, by, unwind=unwind, sums=_plain(sums) if sums else None)
