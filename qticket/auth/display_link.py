"""
Patient display links.

The queue name and ticket number in a display link are scrambled with a
single fixed XOR byte and URL-safe Base64. This only keeps the values
from being read at a glance; anyone holding a link for an existing queue
can view it. No password is involved.
"""

from __future__ import annotations

import base64
import binascii
from typing import Tuple
from urllib.parse import urlencode

from ..services.credential_store import CredentialStore
from ..utils.exceptions import AuthenticationError

DISPLAY_KEY = 0x5A


def _scramble(value: str) -> str:
    data = bytes(b ^ DISPLAY_KEY for b in value.encode("utf-8"))
    return base64.urlsafe_b64encode(data).decode("ascii")


def _unscramble(value: str) -> str:
    padded = value + "=" * (-len(value) % 4)
    try:
        data = base64.urlsafe_b64decode(padded.encode("ascii"))
        return bytes(b ^ DISPLAY_KEY for b in data).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise AuthenticationError(f"Malformed display link: {e}")


def encode_display_link(queue_name: str, number: int) -> Tuple[str, str]:
    return _scramble(queue_name), _scramble(str(number))


def decode_display_link(queue_param: str, number_param: str) -> Tuple[str, int]:
    if not queue_param or not number_param:
        raise AuthenticationError("Display link is missing parameters")
    queue_name = _unscramble(queue_param)
    number_text = _unscramble(number_param)
    if not (number_text.isascii() and number_text.isdigit()):
        raise AuthenticationError("Malformed display link: ticket number is not a number")
    return queue_name, int(number_text)


def build_display_url(base_url: str, queue_name: str, number: int) -> str:
    """The URL a ticket QR code carries"""
    queue_param, number_param = encode_display_link(queue_name, number)
    query = urlencode({"queue": queue_param, "number": number_param})
    return f"{base_url.rstrip('/')}/display?{query}"


def authorize_display(
    credentials: CredentialStore, queue_param: str, number_param: str
) -> Tuple[str, int]:
    """Decode a display link; allowed iff the queue name has a credential record"""
    queue_name, number = decode_display_link(queue_param, number_param)
    if credentials.lookup(queue_name) is None:
        raise AuthenticationError("Queue not found", queue_name)
    return queue_name, number
