"""Owning resources read and written through their descriptors.

Room types live in their own collection; amenities are embedded in room
types and addressed by code, so an amenity lookup finds any room type
carrying that code and projects the matching item.
"""

import copy
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.persistence import DocumentStore
from modules.localization.domain.errors import InvalidInputError, NotFoundError
from modules.localization.domain.models import ResourceTranslationStatus, utc_now
from modules.localization.resources.descriptors import DescriptorTable, ResourceDescriptor

logger = get_module_logger()


class ResourceRegistry:
    def __init__(self, documents: DocumentStore, descriptors: DescriptorTable):
        self.documents = documents
        self.descriptors = descriptors

    def _parent_of(self, resource_type: str) -> Tuple[ResourceDescriptor, Any]:
        """Owning descriptor and coded collection embedding ``resource_type``."""
        for descriptor in self.descriptors:
            for collection in descriptor.coded_collections:
                if collection.resource_type == resource_type and descriptor.collection:
                    return descriptor, collection
        raise NotFoundError(
            f"Resource type '{resource_type}' has no backing collection", field="resource_type"
        )

    async def get(self, resource_type: str, resource_id: str) -> Dict[str, Any]:
        descriptor = self.descriptors.get(resource_type)
        if descriptor.collection:
            doc = await self.documents.get(descriptor.collection, resource_id)
            if doc is None:
                raise NotFoundError(
                    f"{resource_type} '{resource_id}' not found", field="resource_id"
                )
            return doc

        parent_descriptor, collection = self._parent_of(resource_type)
        parent = await self.documents.find_one(
            parent_descriptor.collection,
            {collection.path: {"$elemMatch": {collection.code_field: resource_id}}},
        )
        if parent is None:
            raise NotFoundError(f"{resource_type} '{resource_id}' not found", field="resource_id")
        item = next(
            item
            for item in parent.get(collection.path) or []
            if item.get(collection.code_field) == resource_id
        )
        # amenities inherit the owning room type's base language
        return {**item, "id": resource_id, "content": parent.get("content") or {}}

    async def find(
        self,
        resource_type: str,
        query: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        descriptor = self.descriptors.get(resource_type)
        if not descriptor.collection:
            raise InvalidInputError(
                f"Resource type '{resource_type}' cannot be listed", field="resource_type"
            )
        return await self.documents.find(
            descriptor.collection, query, sort=[("name", 1)], limit=limit, skip=skip
        )

    async def save(
        self, resource_type: str, document: Mapping[str, Any]
    ) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
        """Insert or replace an owning resource; returns ``(stored, previous)``."""
        descriptor = self.descriptors.get(resource_type)
        if not descriptor.collection:
            raise InvalidInputError(
                f"Resource type '{resource_type}' is stored inside its parent",
                field="resource_type",
            )
        data = copy.deepcopy(dict(document))
        data.setdefault("id", uuid.uuid4().hex)
        data["updated_at"] = utc_now()

        previous = await self.documents.get(descriptor.collection, data["id"])
        if previous is None:
            data.setdefault("created_at", data["updated_at"])
            stored = await self.documents.insert(descriptor.collection, data)
        else:
            changes = {k: v for k, v in data.items() if k != "id"}
            stored = await self.documents.update(descriptor.collection, data["id"], {"$set": changes})
        logger.info(
            "resource_saved",
            resource_type=resource_type,
            resource_id=data["id"],
            created=previous is None,
        )
        return stored, previous

    async def source_text(
        self, resource_type: str, resource_id: str, field_name: str
    ) -> Optional[str]:
        """Canonical source text of one field, or None when unknown."""
        if resource_type not in self.descriptors:
            return None
        try:
            resource = await self.get(resource_type, resource_id)
        except NotFoundError:
            return None
        return self.descriptors.get(resource_type).translatable_fields(resource).get(field_name)

    async def write_translation_status(
        self,
        resource_type: str,
        resource_id: str,
        statuses: Sequence[ResourceTranslationStatus],
    ) -> None:
        """Replace the embedded per-language status list of an owning resource."""
        descriptor = self.descriptors.get(resource_type)
        if not descriptor.collection:
            return
        await self.documents.update(
            descriptor.collection,
            resource_id,
            {"$set": {"translation_status": [status.to_document() for status in statuses]}},
        )
