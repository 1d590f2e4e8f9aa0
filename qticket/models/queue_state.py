"""Queue state document models.

JSON keys follow the backup files written by the distributor page:
``currentQueue`` is the last issued number, ``callingQueue`` the last
called number, ``totalQueues`` the outstanding count and ``queues`` the
ticket list.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..utils.exceptions import DocumentSchemaError
from ..utils.timeutil import utcnow


class Ticket(BaseModel):
    """One issued number"""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    number: int = Field(ge=1)
    issued_at: datetime = Field(alias="timestamp")
    served: bool = False
    called_at: Optional[datetime] = Field(default=None, alias="calledAt")


class QueueStateDocument(BaseModel):
    """Counters and tickets for one queue"""

    model_config = ConfigDict(populate_by_name=True)

    queue_name: str = Field(alias="queueName")
    next_issued: int = Field(default=0, ge=0, alias="currentQueue")
    calling: int = Field(default=0, ge=0, alias="callingQueue")
    outstanding: int = Field(default=0, ge=0, alias="totalQueues")
    last_updated: datetime = Field(default_factory=utcnow, alias="lastUpdated")
    tickets: List[Ticket] = Field(default_factory=list, alias="queues")

    @model_validator(mode="after")
    def _check_invariants(self) -> "QueueStateDocument":
        previous = 0
        for ticket in self.tickets:
            if ticket.number <= previous:
                raise ValueError(
                    f"ticket numbers must strictly increase (got {ticket.number} after {previous})"
                )
            previous = ticket.number
        if previous > self.next_issued:
            raise ValueError("ticket number exceeds currentQueue")
        if self.calling > self.next_issued:
            raise ValueError("callingQueue exceeds currentQueue")
        # Stored outstanding counts are never trusted
        self.outstanding = self.count_unserved()
        return self

    def count_unserved(self) -> int:
        return sum(1 for t in self.tickets if not t.served)

    def find_ticket(self, number: int) -> Optional[Ticket]:
        return next((t for t in self.tickets if t.number == number), None)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def zeroed(cls, queue_name: str, now: Optional[datetime] = None) -> "QueueStateDocument":
        return cls(queue_name=queue_name, last_updated=now or utcnow())

    @classmethod
    def from_document(cls, raw: Any, queue_name: str) -> "QueueStateDocument":
        """Validate a stored document, filling fields older writers omitted"""
        if not isinstance(raw, dict):
            raise DocumentSchemaError(f"Queue state for '{queue_name}' is not a JSON object")

        data = dict(raw)
        data.setdefault("queueName", queue_name)
        tickets = data.get("queues") or []
        if not isinstance(tickets, list):
            raise DocumentSchemaError(f"Queue state for '{queue_name}' has a malformed ticket list")
        data["queues"] = tickets

        numbered = [
            t for t in tickets
            if isinstance(t, dict) and isinstance(t.get("number"), int)
        ]
        if "currentQueue" not in data:
            data["currentQueue"] = max((t["number"] for t in numbered), default=0)
        if "callingQueue" not in data:
            data["callingQueue"] = max(
                (t["number"] for t in numbered if t.get("served")), default=0
            )

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise DocumentSchemaError(f"Invalid queue state for '{queue_name}': {e}")
