"""
Display Reader: read-only view of a queue for waiting rooms and patients.

The view is rebuilt by polling at a fixed interval; a change made by the
distributor shows up on the next tick.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..models.queue_state import QueueStateDocument
from ..utils.exceptions import QueueTicketError
from ..utils.logger import get_logger
from ..utils.timeutil import Clock, as_utc, utcnow
from .queue_state_store import QueueStateStore

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
WAITING_FOR_FIRST_CALL = "Waiting for first call"


def format_wait(seconds: float) -> str:
    """Coarsest non-zero unit pair: '1d 2h', '3h 5m', '4m 10s' or '12s'"""
    total = max(int(seconds), 0)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


@dataclass
class ViewerStatus:
    number: int
    called: bool
    ahead: int
    wait_seconds: Optional[float] = None

    @property
    def wait_text(self) -> Optional[str]:
        if self.wait_seconds is None:
            return None
        return format_wait(self.wait_seconds)

    @property
    def message(self) -> str:
        if self.called:
            return "Called, proceed to counter"
        return f"{self.ahead} ahead"


@dataclass
class DisplayView:
    queue_name: str
    calling: int
    next_issued: int
    outstanding: int
    last_updated: datetime
    viewer: Optional[ViewerStatus] = None

    @property
    def banner(self) -> str:
        if self.calling == 0:
            return WAITING_FOR_FIRST_CALL
        return f"Now calling {self.calling}"

    def to_dict(self) -> dict:
        data = {
            "queueName": self.queue_name,
            "calling": self.calling,
            "banner": self.banner,
            "nextIssued": self.next_issued,
            "outstanding": self.outstanding,
            "lastUpdated": self.last_updated.isoformat(),
            "viewer": None,
        }
        if self.viewer is not None:
            data["viewer"] = {
                "number": self.viewer.number,
                "called": self.viewer.called,
                "ahead": self.viewer.ahead,
                "message": self.viewer.message,
                "waitSeconds": self.viewer.wait_seconds,
                "wait": self.viewer.wait_text,
            }
        return data


class DisplayReader:
    """Builds DisplayView snapshots from the state store"""

    def __init__(
        self,
        state_store: QueueStateStore,
        viewer_number: Optional[int] = None,
        clock: Clock = utcnow,
    ):
        self.state_store = state_store
        self.viewer_number = viewer_number
        self.clock = clock

    def refresh(self) -> DisplayView:
        doc = self.state_store.load()
        view = DisplayView(
            queue_name=doc.queue_name,
            calling=doc.calling,
            next_issued=doc.next_issued,
            outstanding=doc.outstanding,
            last_updated=doc.last_updated,
        )
        if self.viewer_number is not None:
            view.viewer = self._viewer_status(doc, self.viewer_number)
        return view

    def _viewer_status(self, doc: QueueStateDocument, number: int) -> ViewerStatus:
        ticket = doc.find_ticket(number)
        if number <= doc.calling:
            wait = None
            if ticket is not None and ticket.called_at is not None:
                wait = (as_utc(ticket.called_at) - as_utc(ticket.issued_at)).total_seconds()
            return ViewerStatus(number=number, called=True, ahead=0, wait_seconds=wait)

        wait = None
        if ticket is not None:
            wait = (as_utc(self.clock()) - as_utc(ticket.issued_at)).total_seconds()
        return ViewerStatus(number=number, called=False, ahead=number - doc.calling, wait_seconds=wait)

    def run(
        self,
        on_update: Callable[[DisplayView], None],
        stop_event: threading.Event,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Poll until stop_event is set"""
        logger.info("Display polling started", queue=self.state_store.queue_name, interval=interval)
        while not stop_event.is_set():
            try:
                on_update(self.refresh())
            except QueueTicketError as e:
                logger.error("Display refresh failed", queue=self.state_store.queue_name, error=str(e))
            stop_event.wait(interval)
        logger.info("Display polling stopped", queue=self.state_store.queue_name)
