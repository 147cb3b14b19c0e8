from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional

from domain.errors import FailureReason

SHIFT = 3

_PRINTABLE_LOW = 32
_PRINTABLE_HIGH = 126
_PRINTABLE_SPAN = _PRINTABLE_HIGH - _PRINTABLE_LOW + 1  # 95


@dataclass
class DecodedToken:
    """Outcome of decoding a credential token; never raised, always returned."""

    success: bool
    plaintext: Optional[str] = None
    error: Optional[FailureReason] = None


def shift_printable(text: str, offset: int) -> str:
    """
    Rotate every printable ASCII character of `text` by `offset`.

    Characters outside [32, 126] pass through unchanged.
    """

    shifted = []
    for char in text:
        code = ord(char)
        if _PRINTABLE_LOW <= code <= _PRINTABLE_HIGH:
            code = (code - _PRINTABLE_LOW + offset) % _PRINTABLE_SPAN + _PRINTABLE_LOW
        shifted.append(chr(code))
    return "".join(shifted)


def _b64decode(data: str) -> bytes:
    data = "".join(data.split())
    data += "=" * (-len(data) % 4)
    return base64.b64decode(data.encode("ascii"), validate=True)


def encode_token(plaintext: str) -> str:
    """
    Build the URL token for `plaintext`.

    Format: base64(shift_printable(base64(plaintext), +3))
    """

    inner = base64.b64encode(plaintext.encode("utf-8")).decode("ascii")
    shifted = shift_printable(inner, SHIFT)
    return base64.b64encode(shifted.encode("latin-1")).decode("ascii")


def decode_token(token: str) -> DecodedToken:
    try:
        intermediate = _b64decode(token).decode("latin-1")
        unshifted = shift_printable(intermediate, -SHIFT)
        plaintext = _b64decode(unshifted).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError, TypeError, AttributeError):
        return DecodedToken(success=False, error=FailureReason.MALFORMED_TOKEN)
    return DecodedToken(success=True, plaintext=plaintext)
