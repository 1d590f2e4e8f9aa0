"""Storage backends for credential, queue state and session documents"""

from .base import (
    CREDENTIALS_KEY,
    SESSION_KEY,
    KeyValueStorage,
    MemoryStorage,
    queue_state_key,
)
from .json_files import JsonFileStorage, ServerFileStorage
from .mirrored import MirroredStorage
from .remote import RemoteDocumentStore

__all__ = [
    "CREDENTIALS_KEY",
    "SESSION_KEY",
    "KeyValueStorage",
    "MemoryStorage",
    "queue_state_key",
    "JsonFileStorage",
    "ServerFileStorage",
    "MirroredStorage",
    "RemoteDocumentStore",
]
