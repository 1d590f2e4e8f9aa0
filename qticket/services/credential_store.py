"""
Credential Store: one collection document mapping queue names to records.

No locking; the last writer wins. Removing the final record deletes the
underlying document instead of leaving an empty collection behind.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..models.credential import CredentialCollection, CredentialRecord
from ..storage.base import CREDENTIALS_KEY, KeyValueStorage
from ..utils.exceptions import DocumentSchemaError
from ..utils.logger import get_logger
from ..utils.timeutil import Clock, utcnow

logger = get_logger(__name__)


class CredentialStore:
    """Lookup, upsert, remove and touch credential records"""

    def __init__(self, storage: KeyValueStorage, clock: Clock = utcnow):
        self.storage = storage
        self.clock = clock

    def _load(self) -> CredentialCollection:
        raw = self.storage.get(CREDENTIALS_KEY)
        if raw is None:
            return CredentialCollection(last_updated=self.clock())
        try:
            return CredentialCollection.model_validate(raw)
        except PydanticValidationError as e:
            raise DocumentSchemaError(f"Invalid credential collection: {e}")

    def _save(self, collection: CredentialCollection) -> None:
        if not collection.queues:
            self.storage.delete(CREDENTIALS_KEY)
            logger.info("Credential collection empty, document removed")
            return
        collection.last_updated = self.clock()
        self.storage.set(CREDENTIALS_KEY, collection.to_document())

    def lookup(self, queue_name: str) -> Optional[CredentialRecord]:
        return self._load().queues.get(queue_name)

    def upsert(self, queue_name: str, record: CredentialRecord) -> None:
        collection = self._load()
        collection.queues[queue_name] = record
        self._save(collection)

    def remove(self, queue_name: str) -> bool:
        collection = self._load()
        if queue_name not in collection.queues:
            return False
        del collection.queues[queue_name]
        self._save(collection)
        logger.info("Credential record removed", queue=queue_name)
        return True

    def touch(self, queue_name: str) -> Optional[CredentialRecord]:
        """Stamp lastAccessed with the current time"""
        collection = self._load()
        record = collection.queues.get(queue_name)
        if record is None:
            return None
        record.last_accessed_at = self.clock()
        self._save(collection)
        return record

    def names(self) -> List[str]:
        return sorted(self._load().queues.keys())

    def all(self) -> Dict[str, CredentialRecord]:
        return dict(self._load().queues)
