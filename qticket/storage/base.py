"""
Key-value storage capability.

The stores only ever call get/set/delete with whole JSON documents, so
the same logic runs against memory (tests), files on the server, the
remote document API, or a local copy mirrored to the server.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

CREDENTIALS_KEY = "queueAuth"
SESSION_KEY = "queueSession"
QUEUE_STATE_PREFIX = "queueBackup_"


def queue_state_key(queue_name: str) -> str:
    return f"{QUEUE_STATE_PREFIX}{queue_name}"


def queue_name_from_key(key: str) -> Optional[str]:
    if key.startswith(QUEUE_STATE_PREFIX):
        return key[len(QUEUE_STATE_PREFIX):]
    return None


class KeyValueStorage(ABC):
    """get/set/delete of whole JSON documents by key"""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None when absent"""

    @abstractmethod
    def set(self, key: str, document: Dict[str, Any]) -> None:
        """Overwrite the document stored under key"""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the document; False when there was nothing to remove"""


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage. Documents are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None):
        self._data: Dict[str, Dict[str, Any]] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        doc = self._data.get(key)
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, key: str, document: Dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(document)

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self):
        return list(self._data.keys())
