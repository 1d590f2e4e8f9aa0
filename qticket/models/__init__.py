"""Pydantic documents for credentials, queue state and sessions"""

from .credential import CredentialCollection, CredentialRecord
from .queue_state import QueueStateDocument, Ticket
from .session import Session

__all__ = [
    "CredentialCollection",
    "CredentialRecord",
    "QueueStateDocument",
    "Ticket",
    "Session",
]
