"""
Tests for the Long-Running Operation Poller

Tests for openjourney/generation/poller.py
"""

import pytest

from openjourney.core.constants import ProviderKind
from openjourney.core.exceptions import (
    GenerationTimeoutError,
    PollerStateError,
    ProviderError,
)
from openjourney.generation.poller import OperationPoller, PollState, poll_until_done
from openjourney.providers.base import OperationHandle, OperationStatus


HANDLE = OperationHandle(provider=ProviderKind.GOOGLE, name="models/veo/operations/op-123")


class ScriptedCheck:
    """Returns the scripted statuses in order, repeating the last one."""

    def __init__(self, *statuses: OperationStatus):
        self.statuses = list(statuses)
        self.calls = 0

    async def __call__(self, handle: OperationHandle) -> OperationStatus:
        status = self.statuses[min(self.calls, len(self.statuses) - 1)]
        self.calls += 1
        return status


class TestPollerCompletion:

    @pytest.mark.asyncio
    async def test_done_on_third_check(self, fake_sleep):
        check = ScriptedCheck(
            OperationStatus(done=False),
            OperationStatus(done=False),
            OperationStatus(done=True, videos=("https://v/1.mp4", "https://v/2.mp4")),
        )
        poller = OperationPoller(HANDLE, check, interval=10.0, sleep=fake_sleep)

        status = await poller.run()

        assert status.videos == ("https://v/1.mp4", "https://v/2.mp4")
        assert check.calls == 3
        assert poller.attempts == 3
        assert poller.state == PollState.DONE
        assert poller.result is status
        # Every check is preceded by one interval
        assert fake_sleep.calls == [10.0, 10.0, 10.0]

    @pytest.mark.asyncio
    async def test_poll_until_done_helper(self, fake_sleep):
        check = ScriptedCheck(OperationStatus(done=True, videos=("https://v/1.mp4",)))

        status = await poll_until_done(HANDLE, check, interval=0.5, max_attempts=3, sleep=fake_sleep)

        assert status.done
        assert fake_sleep.calls == [0.5]


class TestPollerFailure:

    @pytest.mark.asyncio
    async def test_times_out_after_exactly_max_attempts(self, fake_sleep):
        check = ScriptedCheck(OperationStatus(done=False))
        poller = OperationPoller(HANDLE, check, interval=10.0, max_attempts=60, sleep=fake_sleep)

        with pytest.raises(GenerationTimeoutError) as exc_info:
            await poller.run()

        assert check.calls == 60
        assert len(fake_sleep.calls) == 60
        assert poller.state == PollState.TIMED_OUT
        assert exc_info.value.attempts == 60

    @pytest.mark.asyncio
    async def test_provider_reported_error(self, fake_sleep):
        check = ScriptedCheck(
            OperationStatus(done=False),
            OperationStatus(done=True, error="Video blocked by safety filters"),
        )
        poller = OperationPoller(HANDLE, check, sleep=fake_sleep)

        with pytest.raises(ProviderError, match="safety filters"):
            await poller.run()

        assert poller.state == PollState.FAILED
        assert check.calls == 2

    @pytest.mark.asyncio
    async def test_check_exception_propagates(self, fake_sleep):
        async def broken(handle):
            raise RuntimeError("connection reset")

        poller = OperationPoller(HANDLE, broken, sleep=fake_sleep)

        with pytest.raises(RuntimeError):
            await poller.run()

        assert poller.state == PollState.FAILED


class TestPollerLifecycle:

    @pytest.mark.asyncio
    async def test_poller_is_single_use(self, fake_sleep):
        poller = OperationPoller(HANDLE, ScriptedCheck(OperationStatus(done=True)), sleep=fake_sleep)
        await poller.run()

        with pytest.raises(PollerStateError):
            await poller.run()

    def test_initial_state(self):
        poller = OperationPoller(HANDLE, ScriptedCheck(OperationStatus(done=True)))

        assert poller.state == PollState.SUBMITTED
        assert poller.attempts == 0
        assert not poller.finished

    def test_rejects_non_positive_attempts(self):
        with pytest.raises(ValueError):
            OperationPoller(HANDLE, ScriptedCheck(OperationStatus(done=True)), max_attempts=0)
