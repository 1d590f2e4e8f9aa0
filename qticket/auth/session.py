"""
Distributor sessions.

A session is {queue, loginTime, tag} where tag is the verification
digest of the queue name plus the login calendar day. It is client-held
and only proves the pair was not edited by hand; it expires after
max_age (8 hours by default).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from ..models.session import Session
from ..storage.base import SESSION_KEY, KeyValueStorage
from ..utils.exceptions import AuthenticationError
from ..utils.logger import get_logger
from ..utils.timeutil import Clock, as_utc, utcnow
from .codecs import verification_code

logger = get_logger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=8)


def calendar_day(moment: datetime) -> str:
    """Day string of the form 'Mon Oct 19 2026'"""
    return moment.strftime("%a %b %d %Y")


def session_tag(queue_name: str, login_time: datetime) -> str:
    return verification_code(queue_name + calendar_day(login_time))


class SessionManager:
    """Create, read back and validate the stored session"""

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Clock = utcnow,
        max_age: timedelta = DEFAULT_MAX_AGE,
    ):
        self.storage = storage
        self.clock = clock
        self.max_age = max_age

    def create(self, queue_name: str) -> Session:
        now = self.clock()
        session = Session(queue_name=queue_name, login_time=now, tag=session_tag(queue_name, now))
        self.storage.set(SESSION_KEY, session.to_document())
        logger.info("Session created", queue=queue_name)
        return session

    def validate(self, session: Session) -> Session:
        """Return the session unchanged or raise AuthenticationError"""
        if session.tag != session_tag(session.queue_name, session.login_time):
            raise AuthenticationError("Session integrity check failed", session.queue_name)
        age = as_utc(self.clock()) - as_utc(session.login_time)
        if age > self.max_age:
            raise AuthenticationError("Session expired", session.queue_name)
        return session

    def current(self) -> Optional[Session]:
        """The stored session if still valid; an invalid one is cleared"""
        raw = self.storage.get(SESSION_KEY)
        if raw is None:
            return None
        try:
            return self.validate(Session.model_validate(raw))
        except (AuthenticationError, PydanticValidationError) as e:
            logger.warning("Stored session rejected", error=str(e))
            self.clear()
            return None

    def clear(self) -> None:
        self.storage.delete(SESSION_KEY)
