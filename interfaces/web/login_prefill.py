from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlsplit, urlunsplit

from domain.errors import FailureReason

from .credential_token import decode_token

# Seconds before consumed credentials are scrubbed from the visible address.
SCRUB_DELAY_SECONDS = 2.0
# Seconds the auto-fill notice stays visible.
MESSAGE_TTL_SECONDS = 5.0

AUTOFILL_SUCCESS_MESSAGE = "Welcome! Your credentials have been auto-filled. Just click Sign In!"


@dataclass
class LoginPrefill:
    """Credentials recovered from a shared login link."""

    username: str
    password: Optional[str]
    message: str
    from_token: bool
    error: Optional[FailureReason] = None

    @property
    def success(self) -> bool:
        return self.error is None


def _first(params: dict, name: str) -> Optional[str]:
    values = params.get(name)
    if not values:
        return None
    return values[0] or None


def prefill_from_url(url: str) -> Optional[LoginPrefill]:
    """
    Read `username` plus `token` (preferred) or `password` (legacy) from `url`.

    Returns None when the link carries no credentials at all. A token that
    cannot be decoded yields a failed prefill with the manual-entry message;
    the login form stays usable either way.
    """

    params = parse_qs(urlsplit(url).query, keep_blank_values=True)
    username = _first(params, "username")
    token = _first(params, "token")
    legacy_password = _first(params, "password")

    if not username or not (token or legacy_password):
        return None

    if token:
        decoded = decode_token(token)
        password = decoded.plaintext if decoded.success else None
    else:
        password = legacy_password

    if not password:
        return LoginPrefill(
            username=username,
            password=None,
            message=FailureReason.MALFORMED_TOKEN.message,
            from_token=bool(token),
            error=FailureReason.MALFORMED_TOKEN,
        )

    return LoginPrefill(
        username=username,
        password=password,
        message=AUTOFILL_SUCCESS_MESSAGE,
        from_token=bool(token),
    )


def scrub_url(url: str) -> str:
    """Return `url` without its query string and fragment."""

    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
