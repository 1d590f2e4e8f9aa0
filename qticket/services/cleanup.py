"""
Inactivity sweep.

Queues whose credential record has not been touched for max_inactive
lose both their credential record and their state document. Records
without a usable lastAccessed timestamp are left alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from ..storage.base import KeyValueStorage
from ..utils.logger import get_logger
from ..utils.timeutil import Clock, as_utc, utcnow
from .credential_store import CredentialStore
from .queue_state_store import QueueStateStore

logger = get_logger(__name__)

DEFAULT_MAX_INACTIVE = timedelta(days=1)


@dataclass
class CleanupReport:
    ran_at: datetime
    checked: int = 0
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "ranAt": self.ran_at.isoformat(),
            "checked": self.checked,
            "removed": list(self.removed),
            "removedCount": len(self.removed),
            "remaining": len(self.kept),
        }


class CleanupService:
    """Removes queues that have been idle longer than max_inactive"""

    def __init__(
        self,
        credential_store: CredentialStore,
        storage: KeyValueStorage,
        clock: Clock = utcnow,
        max_inactive: timedelta = DEFAULT_MAX_INACTIVE,
    ):
        self.credential_store = credential_store
        self.storage = storage
        self.clock = clock
        self.max_inactive = max_inactive
        self.last_report: Optional[CleanupReport] = None

    def is_inactive(self, last_accessed: Optional[datetime], cutoff: datetime) -> bool:
        if last_accessed is None:
            return False
        return as_utc(last_accessed) < cutoff

    def run_cleanup(self) -> CleanupReport:
        now = self.clock()
        cutoff = as_utc(now) - self.max_inactive
        records = self.credential_store.all()
        report = CleanupReport(ran_at=now, checked=len(records))

        for name, record in sorted(records.items()):
            if not self.is_inactive(record.last_accessed_at, cutoff):
                report.kept.append(name)
                continue
            QueueStateStore(self.storage, name, self.clock).delete()
            self.credential_store.remove(name)
            report.removed.append(name)
            logger.info(
                "Inactive queue removed",
                queue=name,
                last_accessed=record.last_accessed_at.isoformat(),
            )

        self.last_report = report
        logger.info(
            "Cleanup finished",
            checked=report.checked,
            removed=len(report.removed),
            remaining=len(report.kept),
        )
        return report
