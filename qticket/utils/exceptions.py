"""Custom exceptions for the queue ticketing system"""

from typing import Optional


class QueueTicketError(Exception):
    """Base exception for QueueTicket"""
    pass


class ValidationError(QueueTicketError):
    """Queue name or password rejected before any storage call"""
    pass


class AuthenticationError(QueueTicketError):
    """Login, deep-link or session check failed"""

    def __init__(self, reason: str, queue_name: Optional[str] = None):
        self.reason = reason
        self.queue_name = queue_name
        super().__init__(reason)


class TransportError(QueueTicketError):
    """Remote document server unreachable or answered with a server error"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DocumentNotFoundError(QueueTicketError):
    """Stored document does not exist"""
    pass


class DocumentSchemaError(QueueTicketError):
    """Stored document cannot be validated or migrated"""
    pass


class ConfigError(QueueTicketError):
    """Configuration error"""
    pass
