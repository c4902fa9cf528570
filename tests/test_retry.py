"""Tests for the bounded remote-call retry policy."""

from __future__ import annotations

import pytest

from src.clubmeet.core.errors import RemoteAuthError, RemoteServiceError, RemoteTransientError
from src.clubmeet.core.retry import call_with_retry


class _Flaky:
    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


@pytest.fixture
def sleeps():
    recorded: list[float] = []

    async def _sleep(seconds: float) -> None:
        recorded.append(seconds)

    _sleep.recorded = recorded
    return _sleep


@pytest.mark.asyncio
async def test_success_on_first_attempt_does_not_sleep(sleeps):
    fn = _Flaky([])
    assert await call_with_retry(fn, operation="test", sleep=sleeps) == "ok"
    assert fn.calls == 1
    assert sleeps.recorded == []


@pytest.mark.asyncio
async def test_transient_errors_back_off_exponentially(sleeps):
    fn = _Flaky([RemoteTransientError("503"), RemoteTransientError("503")])
    assert await call_with_retry(fn, operation="test", sleep=sleeps) == "ok"
    assert fn.calls == 3
    assert sleeps.recorded == [1, 2]


@pytest.mark.asyncio
async def test_gives_up_after_three_attempts(sleeps):
    fn = _Flaky([RemoteTransientError(f"timeout {i}") for i in range(5)])
    with pytest.raises(RemoteTransientError, match="timeout 2"):
        await call_with_retry(fn, operation="test", sleep=sleeps)
    assert fn.calls == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [RemoteAuthError("401"), RemoteServiceError("400")])
async def test_non_transient_errors_are_not_retried(sleeps, error):
    fn = _Flaky([error])
    with pytest.raises(type(error)):
        await call_with_retry(fn, operation="test", sleep=sleeps)
    assert fn.calls == 1
    assert sleeps.recorded == []
