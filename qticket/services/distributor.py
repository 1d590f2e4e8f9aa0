"""
Distributor Controller: issue, call, reset and delete for one queue.

Each operation returns a Notice for the operator. Remote mirror failures
are absorbed by the storage layer; nothing here retries.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from ..auth.session import SessionManager
from ..models.queue_state import Ticket
from ..utils.exceptions import QueueTicketError
from ..utils.logger import get_logger
from .credential_store import CredentialStore
from .queue_state_store import QueueStateStore

logger = get_logger(__name__)

Confirm = Callable[[str], bool]

RESET_PROMPT = "Are you sure you want to reset all queues? This action cannot be undone."
DELETE_PROMPT = "Are you sure you want to delete this queue? Its tickets and password will be removed."


@dataclass
class Notice:
    """Operator-facing result of a controller action"""
    message: str
    level: str = "info"
    ticket: Optional[Ticket] = None
    redirect: Optional[str] = None


class DistributorController:
    """In-memory counters for one queue, refreshed from the state store"""

    def __init__(
        self,
        queue_name: str,
        state_store: QueueStateStore,
        credential_store: CredentialStore,
        session_manager: Optional[SessionManager] = None,
    ):
        self.queue_name = queue_name
        self.state_store = state_store
        self.credential_store = credential_store
        self.session_manager = session_manager
        self._issuing = threading.Lock()

        self.next_issued = 0
        self.calling = 0
        self.outstanding = 0
        self.reload()

    def reload(self) -> None:
        doc = self.state_store.load()
        self.next_issued = doc.next_issued
        self.calling = doc.calling
        self.outstanding = doc.outstanding

    def issue_next(self) -> Notice:
        if not self._issuing.acquire(blocking=False):
            return Notice("Queue generation already in progress", "warning")
        try:
            number = self.next_issued + 1
            try:
                ticket = self.state_store.append_ticket(number)
                self.reload()
            except (QueueTicketError, OSError) as e:
                logger.error("Queue generation failed", queue=self.queue_name, number=number, error=str(e))
                return Notice("Failed to generate queue", "error")
            return Notice(f"Queue {self.next_issued} generated", "success", ticket=ticket)
        finally:
            self._issuing.release()

    def call_next(self) -> Notice:
        if self.calling >= self.next_issued:
            return Notice("No more queues to call", "info")

        self.calling += 1
        self.outstanding = max(self.outstanding - 1, 0)
        ticket = self.state_store.mark_called(self.calling)
        if ticket is None:
            # Stored state no longer matches; the next reload corrects the display
            logger.warning(
                "Called number has no unserved ticket",
                queue=self.queue_name,
                number=self.calling,
            )
        return Notice(f"Calling Queue {self.calling}", "info", ticket=ticket)

    def reset_all(self, confirm: Confirm) -> Notice:
        if not confirm(RESET_PROMPT):
            return Notice("Reset cancelled", "info")
        try:
            self.state_store.reset()
        except (QueueTicketError, OSError) as e:
            logger.error("Queue reset failed", queue=self.queue_name, error=str(e))
            return Notice("Failed to reset queues", "error")
        self.next_issued = 0
        self.calling = 0
        self.outstanding = 0
        return Notice("All queues have been reset!", "info")

    def delete_queue(self, confirm: Confirm) -> Notice:
        if not confirm(DELETE_PROMPT):
            return Notice("Delete cancelled", "info")
        self.state_store.delete()
        self.credential_store.remove(self.queue_name)
        if self.session_manager is not None:
            self.session_manager.clear()
        self.next_issued = 0
        self.calling = 0
        self.outstanding = 0
        logger.info("Queue deleted", queue=self.queue_name)
        return Notice(f"Queue '{self.queue_name}' deleted", "success", redirect="login")
