"""Bounded retry with backoff for single provider calls."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx

from .config import MAX_RETRIES, RETRY_BACKOFF, RETRY_DELAY
from .errors import (
    AUTH_STATUS,
    RETRYABLE_STATUS,
    ProviderHTTPError,
    ProxyAuthError,
    ServerBusyError,
    is_critical,
    is_transient,
    retry_hint_seconds,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def raise_for_gateway_status(response: httpx.Response) -> httpx.Response:
    """Turn a non-2xx gateway response into the matching exception."""
    if response.is_success:
        return response
    status = response.status_code
    body = response.text[:500]
    if status in AUTH_STATUS:
        raise ProxyAuthError(status, body)
    if status in RETRYABLE_STATUS:
        raise ServerBusyError(status, body)
    raise ProviderHTTPError(status, body)


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    retries: int = MAX_RETRIES,
    delay: float = RETRY_DELAY,
    *,
    backoff: float = RETRY_BACKOFF,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run *operation*, retrying transient failures.

    At most ``retries + 1`` attempts are made. Auth failures and errors that
    need a new credential are re-raised on the spot. A "retry in Ns" hint in
    the error replaces the computed wait for that step and becomes the base
    for the next one. After the last retry the last error propagates
    unchanged.
    """
    attempt = 0
    while True:
        try:
            result = await operation()
            if isinstance(result, httpx.Response):
                raise_for_gateway_status(result)
            return result
        except Exception as exc:
            if isinstance(exc, ProxyAuthError) or is_critical(exc):
                raise
            if attempt >= retries or not is_transient(exc):
                raise
            hint = retry_hint_seconds(exc)
            wait = hint if hint is not None else delay
            attempt += 1
            log.warning(
                "Provider busy, retrying in %.1fs (attempt %d/%d): %s",
                wait, attempt, retries, exc,
            )
            await sleep(wait)
            delay = wait if hint is not None else delay * backoff
