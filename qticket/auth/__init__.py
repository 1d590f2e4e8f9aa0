"""Credential codecs, sessions, login handshake and display links"""

from .codecs import (
    hash_password,
    validate_credentials,
    verification_code,
    verify_password,
)
from .session import SessionManager, session_tag
from .handshake import AuthHandshake, LoginResult, compose_token, parse_token
from .display_link import (
    authorize_display,
    build_display_url,
    decode_display_link,
    encode_display_link,
)

__all__ = [
    "hash_password",
    "validate_credentials",
    "verification_code",
    "verify_password",
    "SessionManager",
    "session_tag",
    "AuthHandshake",
    "LoginResult",
    "compose_token",
    "parse_token",
    "authorize_display",
    "build_display_url",
    "decode_display_link",
    "encode_display_link",
]
