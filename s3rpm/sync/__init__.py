"""Synchronization of local packages with the published repository."""

from .lease import LeaseRecord, PublishLease
from .orchestrator import SyncOrchestrator, SyncPlan, SyncResult
from .workspace import Workspace

__all__ = [
    "LeaseRecord",
    "PublishLease",
    "SyncOrchestrator",
    "SyncPlan",
    "SyncResult",
    "Workspace",
]
