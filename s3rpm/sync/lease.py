"""Advisory publish lease stored next to the repository.

The lease is a small JSON object created with a conditional write, so only
one run can hold it. An expired lease is taken over. The lease only
protects runs that use it; nothing stops a client ignoring it.
"""

import getpass
import json
import os
import socket
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from ..common.errors import LeaseError, RemoteStoreError
from ..common.logger import get_logger
from ..store.base import ObjectStore
from ..store.prefix import RemotePrefix

logger = get_logger("lease")

LEASE_NAME = ".s3rpm.lock"


def default_owner() -> str:
    """Describe the current process as ``user@host:pid``."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    return f"{user}@{socket.gethostname()}:{os.getpid()}"


@dataclass
class LeaseRecord:
    """Contents of the lease object."""

    owner: str
    token: str
    acquired_at: float
    expires_at: float

    def to_json(self) -> bytes:
        return json.dumps(asdict(self), sort_keys=True).encode()

    @classmethod
    def from_json(cls, body: bytes) -> Optional["LeaseRecord"]:
        """Parse a lease body, returning None if it is unreadable."""
        try:
            data = json.loads(body.decode())
            return cls(
                owner=str(data["owner"]),
                token=str(data["token"]),
                acquired_at=float(data["acquired_at"]),
                expires_at=float(data["expires_at"]),
            )
        except (ValueError, KeyError, TypeError, UnicodeDecodeError):
            return None

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class PublishLease:
    """Scoped lease over one remote prefix."""

    def __init__(
        self,
        store: ObjectStore,
        remote: RemotePrefix,
        ttl_seconds: int = 3600,
        owner: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.remote = remote
        self.ttl_seconds = ttl_seconds
        self.owner = owner or default_owner()
        self.clock = clock
        self.record: Optional[LeaseRecord] = None

    @property
    def key(self) -> str:
        return lease_key(self.remote)

    def acquire(self) -> LeaseRecord:
        """Take the lease, replacing an expired one.

        Raises:
            LeaseError: If another unexpired lease is held
        """
        bucket = self.remote.bucket

        for attempt in range(2):
            now = self.clock()
            record = LeaseRecord(
                owner=self.owner,
                token=uuid.uuid4().hex,
                acquired_at=now,
                expires_at=now + self.ttl_seconds,
            )
            if self.store.put_if_absent(bucket, self.key, record.to_json()):
                self.record = record
                logger.info(f"Acquired lease {self.remote.url(self.key)} as {self.owner}")
                return record

            body = self.store.read(bucket, self.key)
            if body is None:
                # Released between our write and read
                continue

            current = LeaseRecord.from_json(body)
            if current is not None and not current.is_expired(now):
                raise LeaseError(bucket, self.key, current.owner)

            if attempt == 0:
                holder = current.owner if current else "unreadable lease"
                logger.warning(f"Taking over expired lease held by {holder}")
                self.store.delete_batch(bucket, [self.key])

        raise LeaseError(bucket, self.key, "another run")

    def release(self) -> None:
        """Drop the lease if this run still holds it."""
        if self.record is None:
            return

        bucket = self.remote.bucket
        body = self.store.read(bucket, self.key)
        current = LeaseRecord.from_json(body) if body is not None else None
        if current is None or current.token != self.record.token:
            logger.warning(f"Lease {self.remote.url(self.key)} was taken over; not releasing")
        else:
            result = self.store.delete_batch(bucket, [self.key])
            if result.is_complete:
                logger.info(f"Released lease {self.remote.url(self.key)}")
        self.record = None

    def __enter__(self) -> "PublishLease":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.release()
            return
        # Keep the run's own error as the one reported
        try:
            self.release()
        except RemoteStoreError as e:
            logger.error(f"Failed to release lease {self.remote.url(self.key)}: {e}")


def lease_key(remote: RemotePrefix) -> str:
    """Key of the lease object for a repository."""
    return remote.key_for(LEASE_NAME)


def is_lease_key(key: str) -> bool:
    """Check if key is the lease object of any repository."""
    return key.rsplit("/", 1)[-1] == LEASE_NAME
