"""Retry wrapper for transports, built on tenacity.

Only RetryableTransportError is retried. Terminal errors and anything else
propagate on the first attempt; after the last attempt the final retryable
error is re-raised unchanged so callers still see its classification.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential_jitter,
)

from otelarc.core.config import RetrySettings
from otelarc.core.errors import RetryableTransportError
from otelarc.core.ports import TransportPort

logger = logging.getLogger(__name__)

# Share of the initial interval added as random jitter; waits never exceed max_interval.
RANDOMIZATION_FACTOR = 0.5


class RetryingTransport:
    """TransportPort decorator that retries retryable failures with backoff."""

    def __init__(
        self,
        inner: TransportPort,
        settings: RetrySettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._inner = inner
        self._settings = settings
        self._sleep = sleep

    @property
    def inner(self) -> TransportPort:
        return self._inner

    def _retrying(self) -> AsyncRetrying:
        settings = self._settings
        stop = stop_after_delay(settings.max_elapsed_time)
        if settings.max_attempts is not None:
            stop = stop | stop_after_attempt(settings.max_attempts)
        wait = wait_exponential_jitter(
            initial=settings.initial_interval,
            max=settings.max_interval,
            exp_base=settings.multiplier,
            jitter=settings.initial_interval * RANDOMIZATION_FACTOR,
        )
        return AsyncRetrying(
            sleep=self._sleep,
            retry=retry_if_exception_type(RetryableTransportError),
            stop=stop,
            wait=wait,
            reraise=True,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )

    async def send(self, payload: bytes, *, database: str, measurement: str) -> None:
        if not self._settings.enabled:
            await self._inner.send(payload, database=database, measurement=measurement)
            return
        async for attempt in self._retrying():
            with attempt:
                await self._inner.send(
                    payload, database=database, measurement=measurement
                )

    async def aclose(self) -> None:
        await self._inner.aclose()
