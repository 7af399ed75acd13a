"""
Long-Running Operation Poller

Single-use state machine driving a provider operation handle to a terminal
state: SUBMITTED -> POLLING -> ... -> DONE | TIMED_OUT | FAILED.
The sleep is injected so tests can run without real time passing.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from openjourney.core.constants import (
    MAX_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    PROVIDER_DISPLAY_NAMES,
)
from openjourney.core.exceptions import (
    GenerationTimeoutError,
    PollerStateError,
    ProviderError,
)
from openjourney.core.logging_config import get_logger
from openjourney.providers.base import OperationHandle, OperationStatus

logger = get_logger("generation.poller")

StatusCheck = Callable[[OperationHandle], Awaitable[OperationStatus]]
Sleep = Callable[[float], Awaitable[None]]


class PollState(Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    DONE = "done"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class OperationPoller:
    """
    Repeatedly checks one operation until it reports done or runs out of attempts.

    Each attempt waits `interval` seconds, then checks once. A handle that never
    finishes produces exactly `max_attempts` checks before GenerationTimeoutError.
    """

    def __init__(
        self,
        handle: OperationHandle,
        check: StatusCheck,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.handle = handle
        self.check = check
        self.interval = interval
        self.max_attempts = max_attempts
        self.sleep = sleep
        self.state = PollState.SUBMITTED
        self.attempts = 0
        self.result: Optional[OperationStatus] = None

    @property
    def finished(self) -> bool:
        return self.state in (PollState.DONE, PollState.TIMED_OUT, PollState.FAILED)

    async def run(self) -> OperationStatus:
        """
        Poll to completion.

        Returns:
            The first OperationStatus reporting done without an error

        Raises:
            PollerStateError: the poller already ran
            ProviderError: the provider reported the operation as failed
            GenerationTimeoutError: max_attempts checks passed without completion
        """
        if self.state != PollState.SUBMITTED:
            raise PollerStateError(
                f"Poller for {self.handle.name} already ran (state: {self.state.value})"
            )

        self.state = PollState.POLLING
        try:
            while self.attempts < self.max_attempts:
                await self.sleep(self.interval)
                status = await self.check(self.handle)
                self.attempts += 1
                logger.debug(
                    f"Operation {self.handle.name} check {self.attempts}/{self.max_attempts}: "
                    f"done={status.done}"
                )

                if not status.done:
                    continue

                if status.error:
                    self.state = PollState.FAILED
                    raise ProviderError(PROVIDER_DISPLAY_NAMES[self.handle.provider], status.error)

                self.state = PollState.DONE
                self.result = status
                logger.info(f"Operation {self.handle.name} finished after {self.attempts} checks")
                return status
        except BaseException:
            if not self.finished:
                self.state = PollState.FAILED
            raise

        self.state = PollState.TIMED_OUT
        logger.warning(f"Operation {self.handle.name} timed out after {self.attempts} checks")
        raise GenerationTimeoutError(self.attempts, self.interval)


async def poll_until_done(
    handle: OperationHandle,
    check: StatusCheck,
    interval: float = POLL_INTERVAL_SECONDS,
    max_attempts: int = MAX_POLL_ATTEMPTS,
    sleep: Sleep = asyncio.sleep,
) -> OperationStatus:
    """Build a poller for `handle` and run it once."""
    poller = OperationPoller(handle, check, interval, max_attempts, sleep)
    return await poller.run()
