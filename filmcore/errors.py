"""Error taxonomy for provider failures and its classifier.

Every failure the core can raise or receive is reduced to an ``ErrorKind``.
The kind decides two things: whether the retry layer may try again, and
whether the surrounding application must obtain a new credential before
issuing any further generation call.
"""
from __future__ import annotations

import json
import math
import re
from enum import Enum

import httpx


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    QUOTA_DAILY = "quota_daily"
    QUOTA_RATE = "quota_rate"
    KEY_INVALID = "key_invalid"
    AUTH_ERROR = "auth_error"
    TIMEOUT = "timeout"
    PARSE = "parse"
    UNKNOWN = "unknown"


# Kinds that require the user to swap credentials
CREDENTIAL_KINDS = frozenset({ErrorKind.QUOTA_DAILY, ErrorKind.QUOTA_RATE, ErrorKind.KEY_INVALID})

RETRYABLE_STATUS = frozenset({429, 500, 503})
AUTH_STATUS = frozenset({401, 403})

_TRANSIENT_MARKERS = (
    "RESOURCE_EXHAUSTED",
    "Failed to fetch",
    "Internal Server Error",
    "INTERNAL",
    "Server Busy",
    "503",
    "429",
    "500",
)
_RETRY_HINT = re.compile(r"retry in ([\d.]+)s", re.IGNORECASE)
ALERT_LIMIT = 150


class FilmCoreError(Exception):
    kind: ErrorKind = ErrorKind.UNKNOWN


class ProviderHTTPError(FilmCoreError):
    """Non-2xx response from an AI gateway."""

    def __init__(self, status_code: int, body: str = "", message: str | None = None):
        self.status_code = status_code
        self.body = body
        text = message or f"HTTP Error: {status_code}"
        if body and message is None:
            text = f"{text} {body[:300]}"
        super().__init__(text)


class ServerBusyError(ProviderHTTPError):
    kind = ErrorKind.TRANSIENT

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(status_code, body, message=f"Server Busy: {status_code} {body[:300]}".rstrip())


class ProxyAuthError(ProviderHTTPError):
    kind = ErrorKind.AUTH_ERROR

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(status_code, body, message=f"Proxy Auth Error: {status_code}")


class ResponseParseError(FilmCoreError):
    kind = ErrorKind.PARSE


class VideoGenerationError(FilmCoreError):
    pass


class VideoTimeoutError(FilmCoreError):
    kind = ErrorKind.TIMEOUT


class MusicGenerationError(FilmCoreError):
    pass


class GenerationCancelled(FilmCoreError):
    pass


class CredentialMissingError(FilmCoreError):
    kind = ErrorKind.KEY_INVALID


def normalize_message(error: object) -> str:
    """Lowercase message used for classification."""
    if isinstance(error, BaseException):
        raw = str(error)
    elif isinstance(error, str):
        raw = error
    else:
        try:
            raw = json.dumps(error, default=str)
        except (TypeError, ValueError):
            raw = "Unknown"
    return (raw or "Unknown").lower()


def _raw_message(error: object) -> str:
    if isinstance(error, BaseException):
        return str(error)
    if isinstance(error, str):
        return error
    return normalize_message(error)


def classify_error(error: object) -> ErrorKind:
    msg = normalize_message(error)

    if "per_day" in msg:
        return ErrorKind.QUOTA_DAILY
    if "limit: 0" in msg or ("429" in msg and "resource_exhausted" in msg):
        return ErrorKind.QUOTA_RATE
    if "api_key_invalid" in msg or "billing" in msg or "requested entity was not found" in msg:
        return ErrorKind.KEY_INVALID
    if isinstance(error, CredentialMissingError):
        return ErrorKind.KEY_INVALID
    if isinstance(error, ProxyAuthError) or "proxy auth error" in msg or "401" in msg:
        return ErrorKind.AUTH_ERROR
    if isinstance(error, FilmCoreError) and error.kind in (ErrorKind.TIMEOUT, ErrorKind.PARSE):
        return error.kind
    if is_transient(error):
        return ErrorKind.TRANSIENT
    return ErrorKind.UNKNOWN


def is_critical(error: object) -> bool:
    """True when the failure can only be fixed by a new credential."""
    return classify_error(error) in CREDENTIAL_KINDS


def is_transient(error: object) -> bool:
    """Retry eligibility, independent of the critical check."""
    if isinstance(error, ProxyAuthError):
        return False
    if isinstance(error, ProviderHTTPError) and error.status_code in RETRYABLE_STATUS:
        return True
    if isinstance(error, httpx.TransportError):
        return True
    raw = _raw_message(error)
    return any(marker in raw for marker in _TRANSIENT_MARKERS)


def retry_hint_seconds(error: object) -> float | None:
    """Wait derived from a provider "retry in Ns" hint, plus one second of slack."""
    match = _RETRY_HINT.search(_raw_message(error))
    if not match:
        return None
    try:
        seconds = float(match.group(1))
    except ValueError:
        return None
    return (math.ceil(seconds * 1000) + 1000) / 1000


def user_message(error: object, kind: ErrorKind | None = None) -> str:
    """Short text suitable for an alert."""
    kind = kind or classify_error(error)
    if kind == ErrorKind.QUOTA_DAILY:
        return "Daily quota exceeded. Switch to another API key."
    if kind in (ErrorKind.QUOTA_RATE, ErrorKind.KEY_INVALID):
        return "API key is invalid or exhausted. Please provide a new key."
    if kind == ErrorKind.AUTH_ERROR:
        return "Unauthorized: the gateway rejected the API key."
    if kind == ErrorKind.TIMEOUT:
        return "Generation timed out."
    return f"Error: {_raw_message(error)[:ALERT_LIMIT]}"
