"""
FastAPI dependencies for distributor authentication.

A distributor request is accepted when either:
- the ``token`` query parameter passes deep-link re-authentication, or
- the session cookie carries a server-signed session for the same queue.

The cookie is signed with itsdangerous; the session tag inside it is
checked by SessionManager after the signature.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request, Response
from itsdangerous import BadSignature, URLSafeTimedSerializer
from pydantic import ValidationError as PydanticValidationError

from qticket.auth.session import SessionManager
from qticket.models.session import Session
from qticket.utils.exceptions import AuthenticationError
from qticket.utils.logger import get_logger

from .context import ServerContext
from .documents_api import get_context

logger = get_logger(__name__)

SESSION_COOKIE = "qticket_session"


@dataclass
class DistributorAuth:
    """Authenticated distributor for one queue"""
    queue_name: str
    sessions: SessionManager
    token: Optional[str] = None


def encode_session_cookie(serializer: URLSafeTimedSerializer, session: Session) -> str:
    return serializer.dumps(session.to_document())


def decode_session_cookie(
    serializer: URLSafeTimedSerializer, value: str, max_age_seconds: int
) -> Optional[Session]:
    """Session from a signed cookie; None when unsigned, tampered or too old"""
    try:
        data = serializer.loads(value, max_age=max_age_seconds)
    except BadSignature:
        return None
    try:
        return Session.model_validate(data)
    except PydanticValidationError:
        return None


def set_session_cookie(response: Response, ctx: ServerContext, session: Session) -> None:
    max_age_seconds = int(ctx.session_max_age.total_seconds())
    response.set_cookie(
        key=SESSION_COOKIE,
        value=encode_session_cookie(ctx.cookie_serializer, session),
        max_age=max_age_seconds,
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE)


async def require_distributor(
    queue_name: str,
    request: Request,
    ctx: ServerContext = Depends(get_context),
) -> DistributorAuth:
    """
    Dependency for /distributor/{queue_name} routes.

    Raises AuthenticationError (401 with a redirect to the login page).
    """
    token = request.query_params.get("token")
    if token:
        try:
            ctx.handshake().reauthenticate(queue_name, token)
        except AuthenticationError as e:
            logger.warning("Deep link rejected", queue=queue_name, reason=e.reason)
            raise
        return DistributorAuth(queue_name, ctx.sessions(), token=token)

    cookie = request.cookies.get(SESSION_COOKIE)
    if not cookie:
        raise AuthenticationError("Not logged in", queue_name)
    session = decode_session_cookie(
        ctx.cookie_serializer, cookie, int(ctx.session_max_age.total_seconds())
    )
    if session is None:
        logger.warning("Session cookie rejected", queue=queue_name)
        raise AuthenticationError("Session expired or invalid", queue_name)

    sessions = ctx.sessions(session)
    current = sessions.current()
    if current is None:
        raise AuthenticationError("Session expired or invalid", queue_name)
    if current.queue_name != queue_name:
        raise AuthenticationError("Session belongs to a different queue", queue_name)
    if ctx.credentials.lookup(queue_name) is None:
        raise AuthenticationError("Queue not found", queue_name)
    return DistributorAuth(queue_name, sessions)
