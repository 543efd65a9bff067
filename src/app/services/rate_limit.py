"""Rate-Aware Remote Caller

Wraps every outbound call to the remote tracking API:
- enforces a minimum spacing between calls
- classifies failures (quota, abuse/secondary throttling, transient server
  error, soft-throttle null response)
- retries classified failures with exponential backoff + jitter
- counts consecutive failures across calls and raises a cooldown that callers
  consult before starting new work

The outcome is a typed Result: Ok(data), Err(retryable=True) once attempts
are exhausted on a throttling failure, or Err(retryable=False) for anything
that retrying would not fix.
"""
import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar
from libs.result import Error, Result, Return
from src.app.services.remote_api_client import RemoteApiError
from src.domain.enums import FailureKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

PRIMARY_LIMIT_MESSAGES = ("api rate limit exceeded",)
SECONDARY_LIMIT_MESSAGES = ("secondary rate limit", "abuse detection", "rate limit")
SERVER_ERROR_STATUSES = (500, 502, 503, 504)


@dataclass
class RateLimitPolicy:
    """Tunables for throttling, retry and cooldown (all durations in seconds)"""
    min_request_interval: float = 1.0
    max_attempts: int = 3
    base_delay: float = 5.0
    secondary_base_delay: float = 30.0
    max_delay: float = 120.0
    max_jitter: float = 0.5
    cooldown: float = 120.0
    failure_window: float = 120.0
    cooldown_threshold: int = 3

    @classmethod
    def from_config(cls, config) -> "RateLimitPolicy":
        return cls(
            min_request_interval=config.MIN_REQUEST_INTERVAL,
            max_attempts=config.MAX_RETRY_ATTEMPTS,
            base_delay=config.RETRY_BASE_DELAY,
            secondary_base_delay=config.SECONDARY_RETRY_BASE_DELAY,
            max_delay=config.RETRY_MAX_DELAY,
            max_jitter=config.MAX_JITTER,
            cooldown=config.RATE_LIMIT_COOLDOWN,
            failure_window=config.RATE_LIMIT_FAILURE_WINDOW,
            cooldown_threshold=config.COOLDOWN_THRESHOLD,
        )

    def base_delay_for(self, kind: FailureKind) -> float:
        """Quota exhaustion backs off from the base delay, everything else from the larger one"""
        if kind == FailureKind.quota:
            return self.base_delay
        return self.secondary_base_delay


@dataclass
class CallError(Error):
    """Error returned at the caller boundary"""
    kind: Optional[FailureKind] = None
    retryable: bool = False


def classify_failure(error: BaseException) -> Optional[FailureKind]:
    """
    Classify a failed remote call.

    Returns:
        FailureKind for throttling / transient failures, None when retrying
        would not help (bad request, not found, parse errors, ...)
    """
    if not isinstance(error, RemoteApiError):
        return None

    if error.null_response:
        return FailureKind.null_response

    if error.transport_error or error.status_code in SERVER_ERROR_STATUSES:
        return FailureKind.server_error

    message = (error.message or "").lower()
    if error.status_code == 429 or any(m in message for m in PRIMARY_LIMIT_MESSAGES):
        return FailureKind.quota

    if error.status_code == 403 or any(m in message for m in SECONDARY_LIMIT_MESSAGES):
        return FailureKind.abuse

    if any(isinstance(e, dict) and e.get("type") == "RATE_LIMITED" for e in error.errors):
        return FailureKind.abuse

    return None


def calculate_backoff(attempt: int, base_delay: float, max_delay: float, jitter: float = 0.0) -> float:
    """
    Exponential backoff delay in seconds.

    Formula: min(max_delay, base_delay * 2 ^ attempt + jitter)
    Examples (base 5s, no jitter): attempt=0 -> 5s, attempt=1 -> 10s, attempt=2 -> 20s

    Args:
        attempt: Retry attempt number (0-indexed)
        base_delay: Delay for the first retry
        max_delay: Upper bound
        jitter: Random spread added before capping
    """
    return min(max_delay, base_delay * (2 ** attempt) + jitter)


class RateLimitState:
    """
    Process-wide failure counters shared by every concurrent handler.

    Not persisted. Construct one per process (or per test) and inject it;
    mutations happen between awaits on a single event loop.
    """

    def __init__(self, policy: Optional[RateLimitPolicy] = None, clock: Callable[[], float] = time.monotonic):
        self.policy = policy or RateLimitPolicy()
        self._clock = clock
        self.last_failure_at: Optional[float] = None
        self._consecutive = 0

    def record_failure(self) -> int:
        """Record a throttling failure and return the consecutive count"""
        now = self._clock()
        if self.last_failure_at is not None and now - self.last_failure_at < self.policy.failure_window:
            self._consecutive += 1
        else:
            self._consecutive = 1
        self.last_failure_at = now
        return self._consecutive

    @property
    def consecutive_failures(self) -> int:
        """Consecutive failures, 0 once a quiet window has passed"""
        if self.last_failure_at is None:
            return 0
        if self._clock() - self.last_failure_at >= self.policy.failure_window:
            return 0
        return self._consecutive

    def should_cooldown(self) -> bool:
        if self.last_failure_at is None:
            return False
        elapsed = self._clock() - self.last_failure_at
        return self._consecutive >= self.policy.cooldown_threshold and elapsed < self.policy.cooldown

    def cooldown_remaining(self) -> float:
        if not self.should_cooldown():
            return 0.0
        return max(0.0, self.policy.cooldown - (self._clock() - self.last_failure_at))

    def reset(self) -> None:
        self.last_failure_at = None
        self._consecutive = 0


class RateAwareCaller:
    """
    Rate-aware wrapper around remote API calls.

    Usage:
        result = await caller.call(lambda: client.fetch_page(repo, kind), context="octo/repo page 3")
        if result.is_err() and result.error.retryable:
            ...  # abort the pass
    """

    def __init__(
        self,
        rate_limit_state: RateLimitState,
        policy: Optional[RateLimitPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ):
        self.rate_limit_state = rate_limit_state
        self.policy = policy or rate_limit_state.policy
        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()
        self._spacing_lock = asyncio.Lock()
        self._last_call_at: Optional[float] = None

    async def wait_for_cooldown(self) -> float:
        """Sleep out any active cooldown; returns the time waited"""
        remaining = self.rate_limit_state.cooldown_remaining()
        if remaining > 0:
            logger.warning(
                f"[RateLimit] Cooldown active after {self.rate_limit_state.consecutive_failures} consecutive "
                f"failures, pausing {remaining:.1f}s"
            )
            await self._sleep(remaining)
        return remaining

    async def _throttle(self) -> None:
        """Keep at least min_request_interval between outbound calls"""
        async with self._spacing_lock:
            if self._last_call_at is not None:
                elapsed = self._clock() - self._last_call_at
                if elapsed < self.policy.min_request_interval:
                    await self._sleep(self.policy.min_request_interval - elapsed)
            self._last_call_at = self._clock()

    def _jitter(self) -> float:
        return self._rng.uniform(0, self.policy.max_jitter)

    async def call(self, fn: Callable[[], Awaitable[T]], context: str = "") -> Result[T]:
        """
        Execute fn with throttling and bounded retries.

        Args:
            fn: Zero-argument coroutine factory performing one remote call
            context: Label used in log lines

        Returns:
            Result[T]: Ok(data) or Err(CallError)
        """
        max_attempts = self.policy.max_attempts
        for attempt in range(max_attempts):
            await self.wait_for_cooldown()
            await self._throttle()

            try:
                return Return.ok(await fn())
            except Exception as e:
                kind = classify_failure(e)

                if kind is None:
                    logger.error(f"[RateLimit] {context} - Non-retryable failure: {e}")
                    return Return.err(
                        CallError(
                            code="REMOTE_CALL_FAILED",
                            message=str(e) or type(e).__name__,
                            reason=type(e).__name__,
                            retryable=False,
                        )
                    )

                hits = self.rate_limit_state.record_failure()

                if attempt == max_attempts - 1:
                    logger.error(
                        f"[RateLimit] {context} - Max retries reached ({max_attempts}) "
                        f"on {kind.value}, giving up"
                    )
                    return Return.err(
                        CallError(
                            code="TRANSIENT_SERVER_ERROR" if kind == FailureKind.server_error else "RATE_LIMITED",
                            message=f"{kind.value} after {max_attempts} attempts: {e}",
                            reason=context or None,
                            kind=kind,
                            retryable=True,
                        )
                    )

                delay = calculate_backoff(
                    attempt,
                    self.policy.base_delay_for(kind),
                    self.policy.max_delay,
                    self._jitter(),
                )
                logger.warning(
                    f"[RateLimit] {context} - Hit {kind.value} (attempt {attempt + 1}/{max_attempts}, "
                    f"{hits} consecutive), backing off for {delay:.1f}s"
                )
                await self._sleep(delay)

        # max_attempts < 1
        return Return.err(CallError(code="REMOTE_CALL_FAILED", message="No attempts allowed", retryable=False))
