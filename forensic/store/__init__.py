"""
Record store and caching for properties and forensic documents.
"""

from .cache import CachedPropertyReader, TTLCache
from .repository import PropertyFilter, PropertyRepository, get_property_repository

__all__ = [
    "PropertyFilter",
    "PropertyRepository",
    "get_property_repository",
    "TTLCache",
    "CachedPropertyReader",
]
