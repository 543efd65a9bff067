"""Unit tests for the rate-aware remote caller

Covers failure classification, backoff shape, the shared cooldown counter
and the retry loop, with a fake clock so no test actually sleeps.
"""
import pytest
from unittest.mock import AsyncMock
from src.app.services.rate_limit import (
    RateAwareCaller,
    RateLimitPolicy,
    RateLimitState,
    calculate_backoff,
    classify_failure,
)
from src.app.services.remote_api_client import RemoteApiError
from src.domain.enums import FailureKind
from tests.fixtures.remote import FakeClock, FakeSleep


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(clock):
    return FakeSleep(clock)


@pytest.fixture
def policy():
    return RateLimitPolicy(max_jitter=0.0)


@pytest.fixture
def state(policy, clock):
    return RateLimitState(policy, clock=clock)


@pytest.fixture
def caller(state, policy, fake_sleep, clock):
    return RateAwareCaller(state, policy, sleep=fake_sleep, clock=clock)


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (RemoteApiError("Too many requests", status_code=429), FailureKind.quota),
            (RemoteApiError("API rate limit exceeded for user ID 1", status_code=200), FailureKind.quota),
            (RemoteApiError("Forbidden", status_code=403), FailureKind.abuse),
            (RemoteApiError("You have exceeded a secondary rate limit"), FailureKind.abuse),
            (RemoteApiError("abuse detection mechanism triggered"), FailureKind.abuse),
            (RemoteApiError("Throttled", errors=[{"type": "RATE_LIMITED"}]), FailureKind.abuse),
            (RemoteApiError("Bad gateway", status_code=502), FailureKind.server_error),
            (RemoteApiError("Connection reset", transport_error=True), FailureKind.server_error),
            (RemoteApiError("Empty response", status_code=200, null_response=True), FailureKind.null_response),
        ],
    )
    def test_throttling_failures(self, error, expected):
        assert classify_failure(error) == expected

    def test_not_found_is_not_retryable(self):
        assert classify_failure(RemoteApiError("Not Found", status_code=404)) is None

    def test_other_exceptions_are_not_retryable(self):
        assert classify_failure(ValueError("bad payload")) is None


class TestCalculateBackoff:
    def test_doubles_from_base(self):
        assert calculate_backoff(0, 5.0, 120.0) == 5.0
        assert calculate_backoff(1, 5.0, 120.0) == 10.0
        assert calculate_backoff(2, 5.0, 120.0) == 20.0

    def test_jitter_is_added(self):
        assert calculate_backoff(0, 5.0, 120.0, jitter=0.4) == pytest.approx(5.4)

    def test_monotonic_and_bounded(self):
        delays = [calculate_backoff(attempt, 30.0, 120.0, jitter=0.5) for attempt in range(12)]

        assert delays == sorted(delays)
        assert all(delay <= 120.0 for delay in delays)
        assert delays[-1] == 120.0


class TestRateLimitState:
    def test_three_failures_raise_cooldown(self, state, clock):
        for _ in range(3):
            state.record_failure()
            clock.advance(1)

        assert state.consecutive_failures == 3
        assert state.should_cooldown()
        assert state.cooldown_remaining() == pytest.approx(119.0)

    def test_cooldown_expires(self, state, clock):
        for _ in range(3):
            state.record_failure()

        clock.advance(121)

        assert not state.should_cooldown()
        assert state.cooldown_remaining() == 0.0

    def test_counter_restarts_after_quiet_window(self, state, clock):
        state.record_failure()
        state.record_failure()
        clock.advance(121)

        assert state.consecutive_failures == 0
        assert state.record_failure() == 1
        assert not state.should_cooldown()

    def test_reset(self, state):
        for _ in range(3):
            state.record_failure()

        state.reset()

        assert state.consecutive_failures == 0
        assert not state.should_cooldown()


class TestRateAwareCaller:
    @pytest.mark.asyncio
    async def test_success_returns_ok(self, caller, fake_sleep):
        fn = AsyncMock(return_value={"items": []})

        result = await caller.call(fn, context="page 1")

        assert result.is_ok()
        assert result.value == {"items": []}
        assert fake_sleep.calls == []

    @pytest.mark.asyncio
    async def test_enforces_minimum_spacing(self, caller, fake_sleep):
        fn = AsyncMock(return_value="ok")

        await caller.call(fn)
        await caller.call(fn)

        assert fake_sleep.calls == [pytest.approx(1.0)]

    @pytest.mark.asyncio
    async def test_retries_quota_failure_with_base_delay(self, caller, fake_sleep, state):
        fn = AsyncMock(side_effect=[RemoteApiError("Too many requests", status_code=429), "ok"])

        result = await caller.call(fn)

        assert result.is_ok()
        assert fn.await_count == 2
        assert fake_sleep.calls == [5.0]
        assert state.consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_exhausted_throttling_is_retryable_error(self, caller, fake_sleep, state):
        fn = AsyncMock(side_effect=RemoteApiError("secondary rate limit", status_code=403))

        result = await caller.call(fn, context="octo/widgets page 2")

        assert result.is_err()
        assert result.error.code == "RATE_LIMITED"
        assert result.error.kind == FailureKind.abuse
        assert result.error.retryable is True
        assert fn.await_count == 3
        # Secondary base delay: 30s then 60s
        assert fake_sleep.calls == [30.0, 60.0]
        assert state.should_cooldown()

    @pytest.mark.asyncio
    async def test_exhausted_server_errors(self, caller):
        fn = AsyncMock(side_effect=RemoteApiError("Service unavailable", status_code=503))

        result = await caller.call(fn)

        assert result.error.code == "TRANSIENT_SERVER_ERROR"
        assert result.error.kind == FailureKind.server_error
        assert result.error.retryable is True

    @pytest.mark.asyncio
    async def test_null_response_is_retried(self, caller, fake_sleep):
        fn = AsyncMock(side_effect=[RemoteApiError("Empty", null_response=True), "ok"])

        result = await caller.call(fn)

        assert result.is_ok()
        assert fake_sleep.calls == [30.0]

    @pytest.mark.asyncio
    async def test_fatal_failure_is_not_retried(self, caller, fake_sleep, state):
        fn = AsyncMock(side_effect=RemoteApiError("Not Found", status_code=404))

        result = await caller.call(fn)

        assert result.is_err()
        assert result.error.code == "REMOTE_CALL_FAILED"
        assert result.error.retryable is False
        assert fn.await_count == 1
        assert fake_sleep.calls == []
        assert state.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_waits_out_cooldown_before_calling(self, caller, fake_sleep, state, clock):
        # Three consecutive secondary throttles at t=0
        for _ in range(3):
            state.record_failure()
        clock.advance(10)
        fn = AsyncMock(return_value="ok")

        result = await caller.call(fn)

        assert result.is_ok()
        assert fake_sleep.calls[0] == pytest.approx(110.0)

    @pytest.mark.asyncio
    async def test_backoff_never_exceeds_max_delay(self, fake_sleep, clock):
        policy = RateLimitPolicy(max_attempts=6, max_jitter=0.5, max_delay=120.0, cooldown_threshold=100)
        state = RateLimitState(policy, clock=clock)
        caller = RateAwareCaller(state, policy, sleep=fake_sleep, clock=clock)
        fn = AsyncMock(side_effect=RemoteApiError("secondary rate limit", status_code=403))

        await caller.call(fn)

        assert len(fake_sleep.calls) == 5
        assert all(delay <= 120.0 for delay in fake_sleep.calls)
        assert fake_sleep.calls == sorted(fake_sleep.calls)
