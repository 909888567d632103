"""Owning resources (room types, amenities) and their localized views."""

from modules.localization.resources.adapter import ResourceLocalizationAdapter
from modules.localization.resources.descriptors import (
    ArrayProjection,
    CodedCollection,
    DescriptorTable,
    ResourceDescriptor,
    RoomAmenityDescriptor,
    RoomTypeDescriptor,
    default_descriptors,
)
from modules.localization.resources.registry import ResourceRegistry

__all__ = [
    "ArrayProjection",
    "CodedCollection",
    "DescriptorTable",
    "ResourceDescriptor",
    "ResourceLocalizationAdapter",
    "ResourceRegistry",
    "RoomAmenityDescriptor",
    "RoomTypeDescriptor",
    "default_descriptors",
]
