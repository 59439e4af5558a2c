"""
Resilient GET helper for upstream JSON APIs.

One logical request is a sequence of attempts. ``attempt_get`` performs a
single GET and classifies what came back; ``fetch_json`` drives the attempts
with tenacity, waiting ``2**n * backoff_base`` seconds after a retryable
failure on attempt ``n`` (1s, 2s, 4s with the default base).

Classification:
- HTTP 5xx, connection failure, timeout -> retryable
- HTTP 429                              -> terminal, surfaced immediately
- any other HTTP 4xx                    -> terminal
- body that is not JSON                 -> terminal
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from open_meteo_mcp.clients.errors import (
    InvalidUpstreamDataError,
    OpenMeteoError,
    RateLimitedError,
    UpstreamRequestError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry budget and timing for one logical request."""

    max_retries: int = 3
    timeout_seconds: float = 10.0
    backoff_base_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1.")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive.")

    def retrying(self, sleep: Sleep = asyncio.sleep) -> AsyncRetrying:
        """Tenacity controller for this policy; re-raises the last error when exhausted."""
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.backoff_base_seconds, exp_base=2),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            sleep=sleep,
            reraise=True,
        )


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    data: Any = None
    error: OpenMeteoError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, OpenMeteoError) and error.retryable


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    delay = state.next_action.sleep if state.next_action else 0
    logger.warning(
        f"{error} Attempt {state.attempt_number} failed; retrying in {delay:g}s"
    )


def classify_response(response: httpx.Response) -> AttemptOutcome:
    """Turn a completed HTTP response into an outcome."""
    status = response.status_code

    if status == 429:
        return AttemptOutcome(
            error=RateLimitedError(
                "Rate limited by the weather service (HTTP 429). Try again later."
            )
        )
    if status >= 500:
        return AttemptOutcome(
            error=UpstreamUnavailableError(
                f"Weather service unavailable (HTTP {status})."
            )
        )
    if status >= 400:
        reason = _error_reason(response)
        return AttemptOutcome(
            error=UpstreamRequestError(
                f"Weather service rejected the request (HTTP {status}): {reason}",
                status_code=status,
            )
        )

    try:
        data = response.json()
    except ValueError:
        return AttemptOutcome(
            error=InvalidUpstreamDataError("Weather service returned invalid data.")
        )
    return AttemptOutcome(data=data)


def _error_reason(response: httpx.Response) -> str:
    # Open-Meteo reports bad parameters as {"error": true, "reason": "..."}
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "unknown error"
    if isinstance(body, dict) and body.get("reason"):
        return str(body["reason"])
    return response.reason_phrase or "unknown error"


async def attempt_get(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, Any] | None,
    timeout_seconds: float,
) -> AttemptOutcome:
    """Perform one GET bounded by ``timeout_seconds`` and classify it."""
    try:
        response = await asyncio.wait_for(
            client.get(url, params=params, timeout=timeout_seconds),
            timeout=timeout_seconds,
        )
    except (httpx.TimeoutException, asyncio.TimeoutError):
        return AttemptOutcome(
            error=UpstreamTimeoutError(
                f"Weather service did not respond within {timeout_seconds:g}s."
            )
        )
    except httpx.TransportError as e:
        return AttemptOutcome(
            error=UpstreamUnavailableError(f"Could not reach the weather service: {e}")
        )
    return classify_response(response)


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, Any] | None = None,
    *,
    policy: RetryPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """GET ``url`` and return its parsed JSON body, retrying transient failures.

    Raises the last attempt's ``OpenMeteoError`` once the budget is spent, or
    the first terminal error straight away.
    """
    policy = policy or RetryPolicy()

    try:
        async for attempt in policy.retrying(sleep):
            with attempt:
                number = attempt.retry_state.attempt_number
                logger.debug(f"GET {url} attempt {number}/{policy.max_retries}")
                outcome = await attempt_get(client, url, params, policy.timeout_seconds)
                if not outcome.ok:
                    raise outcome.error
                return outcome.data
    except OpenMeteoError as e:
        if e.retryable:
            logger.error(f"Giving up on {url} after {policy.max_retries} attempts: {e}")
        raise
