"""Base classes for object store clients.

Defines the narrow object store capability the sync orchestrator consumes,
along with the data structures it returns.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Visibility(Enum):
    """Access control applied to uploaded objects."""

    PUBLIC_READ = "public-read"
    PRIVATE = "private"

    @property
    def acl(self) -> str:
        """Return the canned ACL name for this visibility."""
        return self.value


@dataclass(frozen=True)
class ObjectInfo:
    """A single object returned by a listing."""

    key: str
    size: int = 0


@dataclass
class DeleteResult:
    """Outcome of a batch delete.

    Per-key failures do not abort the batch; they are collected here and
    the caller decides what to do with them.
    """

    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        """Check if every requested key was deleted."""
        return not self.failed


class ObjectStore(ABC):
    """Abstract object store client.

    Implementations raise RemoteStoreError for any request failure.
    """

    @abstractmethod
    def list(self, bucket: str, prefix: str) -> List[ObjectInfo]:
        """List every object whose key starts with prefix.

        Args:
            bucket: Bucket name
            prefix: Literal key prefix ("" lists the whole bucket)

        Returns:
            All matching objects, empty if the prefix holds nothing
        """
        pass

    @abstractmethod
    def get(self, bucket: str, key: str, dest_path: str) -> None:
        """Download an object, creating parent directories of dest_path.

        Args:
            bucket: Bucket name
            key: Object key
            dest_path: Local file to write (overwritten)
        """
        pass

    @abstractmethod
    def put(self, bucket: str, key: str, src_path: str, visibility: Visibility) -> None:
        """Upload a local file, overwriting any existing object.

        Args:
            bucket: Bucket name
            key: Object key
            src_path: Local file to upload
            visibility: Access control for the object
        """
        pass

    @abstractmethod
    def delete_batch(self, bucket: str, keys: List[str]) -> DeleteResult:
        """Delete a batch of keys.

        Args:
            bucket: Bucket name
            keys: Keys to delete

        Returns:
            DeleteResult with per-key failures
        """
        pass

    @abstractmethod
    def put_if_absent(self, bucket: str, key: str, body: bytes) -> bool:
        """Create an object only if the key does not exist yet.

        Returns:
            True if the object was created, False if the key already existed
        """
        pass

    @abstractmethod
    def read(self, bucket: str, key: str) -> Optional[bytes]:
        """Read a small object into memory.

        Returns:
            Object body, or None if the key does not exist
        """
        pass
