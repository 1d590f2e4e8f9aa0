"""Queue State Store: load and overwrite one queue's state document"""

from __future__ import annotations

from typing import Optional

from ..models.queue_state import QueueStateDocument, Ticket
from ..storage.base import KeyValueStorage, queue_state_key
from ..utils.logger import get_logger
from ..utils.timeutil import Clock, now_millis, utcnow

logger = get_logger(__name__)


class QueueStateStore:
    """Whole-document reads and writes for a single queue name"""

    def __init__(self, storage: KeyValueStorage, queue_name: str, clock: Clock = utcnow):
        self.storage = storage
        self.queue_name = queue_name
        self.clock = clock

    @property
    def key(self) -> str:
        return queue_state_key(self.queue_name)

    def exists(self) -> bool:
        return self.storage.get(self.key) is not None

    def load(self) -> QueueStateDocument:
        """Stored document, migrated and validated; zeroed when absent"""
        raw = self.storage.get(self.key)
        if raw is None:
            return QueueStateDocument.zeroed(self.queue_name, self.clock())
        return QueueStateDocument.from_document(raw, self.queue_name)

    def persist(self, document: QueueStateDocument) -> QueueStateDocument:
        document.queue_name = self.queue_name
        document.last_updated = self.clock()
        # Re-run validation so an invalid in-memory edit never reaches storage
        checked = QueueStateDocument.model_validate(document.model_dump(by_alias=True))
        self.storage.set(self.key, checked.to_document())
        return checked

    def append_ticket(self, number: int) -> Ticket:
        doc = self.load()
        ticket_id = now_millis(self.clock)
        if doc.tickets and ticket_id <= doc.tickets[-1].id:
            ticket_id = doc.tickets[-1].id + 1

        ticket = Ticket(id=ticket_id, number=number, issued_at=self.clock(), served=False)
        doc.tickets.append(ticket)
        doc.next_issued = number
        self.persist(doc)
        logger.info("Ticket issued", queue=self.queue_name, number=number)
        return ticket

    def mark_called(self, number: int) -> Optional[Ticket]:
        """Serve the earliest unserved ticket with this number; None if there is none"""
        doc = self.load()
        ticket = next((t for t in doc.tickets if t.number == number and not t.served), None)
        if ticket is None:
            return None
        if number < doc.calling:
            # Another distributor already called further ahead
            logger.warning(
                "Calling number moves backwards",
                queue=self.queue_name,
                stored=doc.calling,
                number=number,
            )
        ticket.served = True
        ticket.called_at = self.clock()
        doc.calling = number
        self.persist(doc)
        logger.info("Ticket called", queue=self.queue_name, number=number)
        return ticket

    def reset(self) -> QueueStateDocument:
        doc = self.persist(QueueStateDocument.zeroed(self.queue_name, self.clock()))
        logger.info("Queue reset", queue=self.queue_name)
        return doc

    def delete(self) -> bool:
        removed = self.storage.delete(self.key)
        logger.info("Queue state deleted", queue=self.queue_name, removed=removed)
        return removed
