"""Credential, queue state, distributor, display and cleanup services"""

from .credential_store import CredentialStore
from .queue_state_store import QueueStateStore
from .distributor import DistributorController, Notice
from .display_reader import DisplayReader, DisplayView, ViewerStatus, format_wait
from .cleanup import CleanupReport, CleanupService

__all__ = [
    "CredentialStore",
    "QueueStateStore",
    "DistributorController",
    "Notice",
    "DisplayReader",
    "DisplayView",
    "ViewerStatus",
    "format_wait",
    "CleanupReport",
    "CleanupService",
]
