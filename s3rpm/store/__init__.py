"""Object store access for published repositories."""

from .base import DeleteResult, ObjectInfo, ObjectStore, Visibility
from .prefix import RemotePrefix, normalize_prefix

__all__ = [
    "DeleteResult",
    "ObjectInfo",
    "ObjectStore",
    "RemotePrefix",
    "Visibility",
    "normalize_prefix",
]
