"""
Credential codecs and input validation.

- verification_code: fast 32-bit rolling digest (legacy matching, tokens,
  session tags). Not a security primitive.
- reveal_legacy / obfuscate_legacy: the old reversible ``QMS_`` format.
  Only read when verifying records written by older clients.
- hash_password / verify_password: bcrypt, used for every record written now.
"""

import base64
import binascii
import re
import time
from typing import Optional

try:
    import bcrypt
except ImportError:  # pragma: no cover - configuration error, not logic
    raise ImportError("bcrypt is required. Install with: pip install bcrypt")

from ..utils.exceptions import ValidationError

LEGACY_PREFIX = "QMS_"
LEGACY_SHIFT = 7

QUEUE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\u0E00-\u0E7F\-_\s]+$")
PASSWORD_PATTERN = re.compile(r"^[a-zA-Z0-9]{4,20}$")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def validate_credentials(queue_name: str, password: str) -> str:
    """Return the trimmed queue name or raise ValidationError with the inline message"""
    name = (queue_name or "").strip()
    if not name or not password:
        raise ValidationError("Please enter both queue name and password")
    if not QUEUE_NAME_PATTERN.match(name):
        raise ValidationError(
            "Queue name can only contain Thai letters, English letters, numbers, "
            "hyphens, underscores, and spaces"
        )
    if not PASSWORD_PATTERN.match(password):
        raise ValidationError(
            "Password must be 4-20 characters long and contain only English letters and numbers"
        )
    return name


def verification_code(text: str) -> str:
    """h = h*31 + code unit over UTF-16, wrapped to signed 32 bits, abs, hex"""
    h = 0
    units = text.encode("utf-16-le")
    for i in range(0, len(units), 2):
        h = (h * 31 + int.from_bytes(units[i:i + 2], "little")) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(abs(h), "x")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt"""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def is_legacy_obfuscated(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(LEGACY_PREFIX)


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
        if n == 0:
            return out


def obfuscate_legacy(password: str, millis: Optional[int] = None) -> str:
    """Produce the old QMS_ form (fixtures and migration tests only)"""
    inner = base64.b64encode(password.encode("latin-1"))
    shifted = bytes(b + LEGACY_SHIFT for b in inner)
    stamp = _base36(millis if millis is not None else int(time.time() * 1000))[-4:]
    return f"{LEGACY_PREFIX}{base64.b64encode(shifted).decode('ascii')}_{stamp}"


def reveal_legacy(obfuscated: str) -> Optional[str]:
    """Invert the QMS_ form; None when the value is malformed"""
    cleaned = obfuscated
    if cleaned.startswith(LEGACY_PREFIX):
        cleaned = cleaned[len(LEGACY_PREFIX):]
    last_underscore = cleaned.rfind("_")
    if last_underscore > 0:
        cleaned = cleaned[:last_underscore]
    try:
        shifted = base64.b64decode(cleaned, validate=True)
        inner = bytes(b - LEGACY_SHIFT for b in shifted)
        return base64.b64decode(inner, validate=True).decode("latin-1")
    except (binascii.Error, ValueError):
        return None
