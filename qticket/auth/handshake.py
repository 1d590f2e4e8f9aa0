"""
Login and deep-link re-authentication for distributors.

Login claims an unseen queue name or verifies the password of an existing
one. Records written by older clients (reversible ``QMS_`` form, digest
only, or plaintext) are accepted and upgraded to bcrypt after a
successful check. A failed check changes nothing.

The distributor deep link carries ``queue`` plus a composite token
``<verification code>_<plaintext>_<stored secret>``. The plaintext never
contains ``_`` (password charset), so the secret is whatever follows the
second underscore.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..models.credential import CredentialRecord
from ..models.session import Session
from ..services.credential_store import CredentialStore
from ..services.queue_state_store import QueueStateStore
from ..storage.base import KeyValueStorage
from ..utils.exceptions import AuthenticationError
from ..utils.logger import get_logger
from ..utils.timeutil import Clock, utcnow
from . import codecs
from .session import SessionManager

logger = get_logger(__name__)

INVALID_PASSWORD = "Invalid password for existing queue"


@dataclass
class LoginResult:
    """Deep-link parameters handed to the distributor page"""
    queue_name: str
    token: str
    session: Session
    created: bool = False


def compose_token(record: CredentialRecord, plaintext: str) -> str:
    return f"{record.verification_code}_{plaintext}_{record.stored_secret}"


def parse_token(token: str) -> Tuple[str, str, str]:
    parts = (token or "").split("_", 2)
    if len(parts) != 3 or not all(parts):
        raise AuthenticationError("Malformed access token")
    return parts[0], parts[1], parts[2]


class AuthHandshake:
    """Login, token re-authentication and session creation"""

    def __init__(
        self,
        storage: KeyValueStorage,
        credentials: Optional[CredentialStore] = None,
        sessions: Optional[SessionManager] = None,
        clock: Clock = utcnow,
    ):
        self.storage = storage
        self.clock = clock
        self.credentials = credentials or CredentialStore(storage, clock)
        self.sessions = sessions or SessionManager(storage, clock)

    # -------------------- interactive login --------------------

    def login(self, queue_name: str, password: str) -> LoginResult:
        name = codecs.validate_credentials(queue_name, password)
        record = self.credentials.lookup(name)
        created = False

        if record is None:
            record = self._create(name, password)
            created = True
        else:
            matched, legacy = self._verify(record, password)
            if not matched:
                logger.warning("Login rejected", queue=name)
                raise AuthenticationError(INVALID_PASSWORD, name)
            if legacy:
                record = self._upgrade(name, record, password)

        touched = self.credentials.touch(name) or record
        session = self.sessions.create(name)
        logger.info("Distributor logged in", queue=name, created=created)
        return LoginResult(
            queue_name=name,
            token=compose_token(touched, password),
            session=session,
            created=created,
        )

    def _create(self, name: str, password: str) -> CredentialRecord:
        now = self.clock()
        record = CredentialRecord(
            verification_code=codecs.verification_code(password),
            credential_hash=codecs.hash_password(password),
            created_at=now,
            last_accessed_at=now,
        )
        self.credentials.upsert(name, record)
        QueueStateStore(self.storage, name, self.clock).reset()
        logger.info("Queue created", queue=name)
        return record

    def _verify(self, record: CredentialRecord, password: str) -> Tuple[bool, bool]:
        """(matched, is_legacy): first applicable check wins"""
        if record.credential_hash:
            return codecs.verify_password(password, record.credential_hash), False
        if codecs.is_legacy_obfuscated(record.obfuscated_password):
            return codecs.reveal_legacy(record.obfuscated_password) == password, True
        if record.verification_code:
            return codecs.verification_code(password) == record.verification_code, True
        # Oldest records kept the password as-is
        return record.obfuscated_password == password, True

    def _upgrade(self, name: str, record: CredentialRecord, password: str) -> CredentialRecord:
        upgraded = record.model_copy(update={
            "obfuscated_password": None,
            "verification_code": codecs.verification_code(password),
            "credential_hash": codecs.hash_password(password),
            "encrypted": True,
            "upgraded_at": self.clock(),
        })
        self.credentials.upsert(name, upgraded)
        logger.info("Credential record upgraded", queue=name)
        return upgraded

    # -------------------- deep link --------------------

    def reauthenticate(self, queue_name: str, token: str) -> CredentialRecord:
        """Check a distributor deep link; raises AuthenticationError on any mismatch"""
        if not queue_name:
            raise AuthenticationError("Missing queue name")
        code, plaintext, secret = parse_token(token)

        record = self.credentials.lookup(queue_name)
        if record is None:
            raise AuthenticationError("Queue not found", queue_name)
        if record.verification_code != code:
            raise AuthenticationError("Access token does not match", queue_name)
        if record.stored_secret != secret:
            raise AuthenticationError("Access token does not match", queue_name)
        if not (self._secret_matches(secret, plaintext)
                or codecs.verification_code(plaintext) == code):
            raise AuthenticationError("Access token does not match", queue_name)
        return record

    @staticmethod
    def _secret_matches(secret: str, plaintext: str) -> bool:
        if codecs.is_legacy_obfuscated(secret):
            return codecs.reveal_legacy(secret) == plaintext
        return codecs.verify_password(plaintext, secret)
