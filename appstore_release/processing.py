"""
Build processing monitor.

After upload a build goes through asynchronous processing on the backend before
it can be attached to a release or distributed to testers. The monitor polls the
processing state until it is terminal:

    UNKNOWN, PROCESSING  ->  keep waiting (bounded by max_tries)
    VALID                ->  done
    INVALID, FAILED      ->  BuildProcessingError carrying the state

``UNKNOWN`` means the backend has no record of the build yet (the upload may
still be running) and is never treated as a failure.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from .errors import BuildProcessingCancelledError, BuildProcessingError
from .models import BuildProcessingState, WaitForBuildProcessingOptions
from .utils import get_logger

logger = get_logger(__name__)

WAIT_STATES = (BuildProcessingState.UNKNOWN, BuildProcessingState.PROCESSING)
FAIL_STATES = (BuildProcessingState.FAILED, BuildProcessingState.INVALID)

StateFetcher = Callable[[], Awaitable[BuildProcessingState]]


class BuildProcessingMonitor:
    """
    Polls a build's processing state until a terminal condition.

    The monitor owns at most one pending wait at a time and leaves none behind
    once ``wait()`` returns or raises. ``cancel()`` interrupts the pending wait
    and makes ``wait()`` raise ``BuildProcessingCancelledError``.

    Args:
        fetch_state: Coroutine function returning the current processing state
        options: Poll interval, try budget, initial delay and observer
        description: Human readable build identity used in logs
    """

    def __init__(
        self,
        fetch_state: StateFetcher,
        options: Optional[WaitForBuildProcessingOptions] = None,
        description: str = "build",
    ) -> None:
        self.fetch_state = fetch_state
        self.options = options or WaitForBuildProcessingOptions()
        self.description = description
        self.tries = 0
        self.state: Optional[BuildProcessingState] = None
        self._started = False
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    async def wait(self) -> None:
        if self._started:
            raise RuntimeError("A build processing monitor can only be waited on once")
        self._started = True

        state = await self._probe()
        if state in FAIL_STATES:
            raise BuildProcessingError(state)
        if state not in WAIT_STATES:
            logger.info(f"Processing already complete for {self.description} ({state.value})")
            return

        self._observe(state)
        await self._sleep(self.options.initial_delay_in_seconds)

        while True:
            await self._sleep(self.options.poll_interval_in_seconds)
            state = await self._probe()
            self._observe(state)

            if state in FAIL_STATES:
                raise BuildProcessingError(state)
            if state == BuildProcessingState.VALID:
                logger.info(f"Processing complete for {self.description} after {self.tries + 1} polls")
                return

            self.tries += 1
            if self.tries >= self.options.max_tries:
                raise BuildProcessingError(
                    BuildProcessingState.UNKNOWN,
                    "Timed out waiting for processing to complete",
                )

    async def _probe(self) -> BuildProcessingState:
        state = BuildProcessingState(await self.fetch_state())
        self._raise_if_cancelled()
        self.state = state
        return state

    def _observe(self, state: BuildProcessingState) -> None:
        logger.info(f"Processing state of {self.description}: {state.value} (try {self.tries})")
        if self.options.on_poll_callback is not None:
            self.options.on_poll_callback(state, self.tries)

    async def _sleep(self, seconds: float) -> None:
        self._raise_if_cancelled()
        if seconds <= 0:
            await asyncio.sleep(0)
        else:
            try:
                await asyncio.wait_for(self._cancelled.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                pass
        self._raise_if_cancelled()

    def _raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise BuildProcessingCancelledError(
                self.state or BuildProcessingState.UNKNOWN,
                f"Stopped waiting for processing of {self.description}",
            )
