"""Resource descriptors.

A descriptor tells the localization adapter which fields of a resource type
are translatable and how translated text maps back onto the document:

  - scalar fields (``name``, ``description``...)
  - array projections with index-derived field names (``image_caption_0``)
  - sub-collections keyed by code (room amenities), translated as their own
    resource type with the code as resource id

Descriptors are looked up by string tag in a ``DescriptorTable`` held on the
LocalizationContext.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from modules.localization.domain.enums import ContentClass, ResourcePriority
from modules.localization.domain.errors import InvalidInputError, NotFoundError


@dataclass(frozen=True)
class ArrayProjection:
    """``{prefix}_{i}`` fields projected from ``array[i].attribute``."""

    prefix: str
    array: str
    attribute: str

    def field_name(self, index: int) -> str:
        return f"{self.prefix}_{index}"

    def parse(self, field_name: str) -> Optional[int]:
        match = re.fullmatch(rf"{re.escape(self.prefix)}_(\d+)", field_name)
        return int(match.group(1)) if match else None


@dataclass(frozen=True)
class CodedCollection:
    """Sub-collection whose items are translated under their own type."""

    path: str
    code_field: str
    resource_type: str


class ResourceDescriptor:
    """Translatable layout of one resource type.

    Attributes:
        resource_type: Tag used as ``Translation.resource_type``
        collection: Document store collection of the owning resources
        content_class: Language completeness bucket
        scalar_fields: Top-level translatable fields
        projections: Array projections
        coded_collections: Sub-collections translated by code
        default_base_language: Base language when the resource names none
    """

    resource_type: str = ""
    collection: Optional[str] = None
    content_class: str = ContentClass.DESCRIPTIONS.value
    scalar_fields: Sequence[str] = ()
    projections: Sequence[ArrayProjection] = ()
    coded_collections: Sequence[CodedCollection] = ()
    default_base_language: str = "EN"

    def translatable_fields(self, resource: Mapping[str, Any]) -> Dict[str, str]:
        """Field name → source text for every non-empty translatable field."""
        fields: Dict[str, str] = {}
        for name in self.scalar_fields:
            value = resource.get(name)
            if isinstance(value, str) and value.strip():
                fields[name] = value
        for projection in self.projections:
            for index, item in enumerate(resource.get(projection.array) or []):
                value = item.get(projection.attribute) if isinstance(item, Mapping) else None
                if isinstance(value, str) and value.strip():
                    fields[projection.field_name(index)] = value
        return fields

    def field_names(self, resource: Mapping[str, Any]) -> List[str]:
        return list(self.translatable_fields(resource))

    def apply(self, document: Dict[str, Any], field_name: str, text: str) -> bool:
        """Write ``text`` at the document slot of ``field_name``."""
        if field_name in self.scalar_fields:
            document[field_name] = text
            return True
        for projection in self.projections:
            index = projection.parse(field_name)
            if index is None:
                continue
            items = document.get(projection.array) or []
            if index < len(items) and isinstance(items[index], dict):
                items[index][projection.attribute] = text
                return True
        return False

    def content(self, resource: Mapping[str, Any]) -> Mapping[str, Any]:
        return resource.get("content") or {}

    def base_language(self, resource: Mapping[str, Any]) -> str:
        return str(self.content(resource).get("base_language") or self.default_base_language).upper()

    def auto_translate_enabled(self, resource: Mapping[str, Any]) -> bool:
        return bool(self.content(resource).get("auto_translate", False))

    def translation_priority(self, resource: Mapping[str, Any]) -> str:
        value = self.content(resource).get("translation_priority") or ResourcePriority.MEDIUM.value
        try:
            return ResourcePriority(value).value
        except ValueError as exc:
            raise InvalidInputError(
                f"Unknown translation priority '{value}'", field="content.translation_priority"
            ) from exc

    def target_languages(self, resource: Mapping[str, Any]) -> Optional[List[str]]:
        targets = self.content(resource).get("target_languages")
        return [str(code).upper() for code in targets] if targets else None

    def codes(self, resource: Mapping[str, Any], collection: CodedCollection) -> List[str]:
        return [
            str(item[collection.code_field])
            for item in resource.get(collection.path) or []
            if isinstance(item, Mapping) and item.get(collection.code_field)
        ]


class RoomTypeDescriptor(ResourceDescriptor):
    resource_type = "room_type"
    collection = "room_types"
    content_class = ContentClass.ROOM_TYPES.value
    scalar_fields = ("name", "description", "short_description")
    projections = (ArrayProjection(prefix="image_caption", array="images", attribute="caption"),)
    coded_collections = (
        CodedCollection(path="amenities", code_field="code", resource_type="room_amenity"),
    )


class RoomAmenityDescriptor(ResourceDescriptor):
    """Amenities embedded in room types, translated once per amenity code."""

    resource_type = "room_amenity"
    content_class = ContentClass.AMENITIES.value
    scalar_fields = ("name", "description")


class DescriptorTable:
    """Descriptors keyed by resource type tag."""

    def __init__(self, descriptors: Sequence[ResourceDescriptor] = ()):
        self._descriptors: Dict[str, ResourceDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: ResourceDescriptor) -> None:
        self._descriptors[descriptor.resource_type] = descriptor

    def get(self, resource_type: str) -> ResourceDescriptor:
        descriptor = self._descriptors.get(resource_type)
        if descriptor is None:
            raise NotFoundError(
                f"No localization descriptor for resource type '{resource_type}'",
                field="resource_type",
            )
        return descriptor

    def __contains__(self, resource_type: str) -> bool:
        return resource_type in self._descriptors

    def __iter__(self) -> Iterator[ResourceDescriptor]:
        return iter(self._descriptors.values())

    def types(self) -> List[str]:
        return list(self._descriptors)


def default_descriptors() -> DescriptorTable:
    return DescriptorTable([RoomTypeDescriptor(), RoomAmenityDescriptor()])
