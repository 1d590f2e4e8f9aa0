"""Per-process wiring of settings, file storage and services for the web app"""

from __future__ import annotations

import secrets
from datetime import timedelta
from pathlib import Path
from typing import Optional

from itsdangerous import URLSafeTimedSerializer

from qticket.auth.handshake import AuthHandshake
from qticket.auth.session import SessionManager
from qticket.models.session import Session
from qticket.services.cleanup import CleanupService
from qticket.services.credential_store import CredentialStore
from qticket.services.distributor import DistributorController
from qticket.services.display_reader import DisplayReader
from qticket.services.queue_state_store import QueueStateStore
from qticket.storage.base import SESSION_KEY, MemoryStorage
from qticket.storage.json_files import ServerFileStorage
from qticket.utils.config import Settings
from qticket.utils.timeutil import Clock, utcnow


class ServerContext:
    """Everything a request handler needs, built once from settings"""

    def __init__(self, settings: Settings, clock: Clock = utcnow):
        self.settings = settings
        self.clock = clock

        server = settings.server
        self.storage = ServerFileStorage(server.auth_path(), server.backup_path())
        self.static_dir = Path(server.data_dir) / server.static_dir
        self.default_document = server.default_document

        self.credentials = CredentialStore(self.storage, clock)
        self.cleanup = CleanupService(
            self.credentials,
            self.storage,
            clock,
            max_inactive=timedelta(days=settings.cleanup.max_inactive_days),
        )
        self.session_max_age = timedelta(hours=settings.session.max_age_hours)
        self.cookie_serializer = URLSafeTimedSerializer(
            secret_key=settings.session.secret_key or secrets.token_urlsafe(32),
            salt="qticket-session",
        )

    def sessions(self, session: Optional[Session] = None) -> SessionManager:
        """Session manager over the cookie-held session of one request"""
        initial = {SESSION_KEY: session.to_document()} if session is not None else None
        return SessionManager(MemoryStorage(initial), self.clock, self.session_max_age)

    def handshake(self, sessions: Optional[SessionManager] = None) -> AuthHandshake:
        return AuthHandshake(self.storage, self.credentials, sessions or self.sessions(), self.clock)

    def state_store(self, queue_name: str) -> QueueStateStore:
        return QueueStateStore(self.storage, queue_name, self.clock)

    def controller(
        self, queue_name: str, sessions: Optional[SessionManager] = None
    ) -> DistributorController:
        return DistributorController(
            queue_name,
            self.state_store(queue_name),
            self.credentials,
            sessions,
        )

    def display_reader(self, queue_name: str, viewer_number: Optional[int] = None) -> DisplayReader:
        return DisplayReader(self.state_store(queue_name), viewer_number, self.clock)
