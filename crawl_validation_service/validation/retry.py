"""Retry policy for an unreachable validation service."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, stop_never, wait_fixed

from ..monitoring.metrics import VALIDATION_SERVICE_REACHABLE, VALIDATION_TRANSPORT_FAILURES

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class TransportHealth:
    consecutive_failures: int = 0
    total_failures: int = 0
    last_error: Optional[str] = None
    last_failure_at: Optional[datetime] = None

    @property
    def healthy(self) -> bool:
        return self.consecutive_failures == 0

    def record_failure(self, exc: BaseException) -> None:
        self.consecutive_failures += 1
        self.total_failures += 1
        self.last_error = str(exc) or type(exc).__name__
        self.last_failure_at = datetime.now(timezone.utc)
        VALIDATION_TRANSPORT_FAILURES.inc()
        VALIDATION_SERVICE_REACHABLE.set(0)

    def record_success(self) -> None:
        self.consecutive_failures = 0
        VALIDATION_SERVICE_REACHABLE.set(1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "healthy": self.healthy,
            "consecutive_failures": self.consecutive_failures,
            "total_failures": self.total_failures,
            "last_error": self.last_error,
            "last_failure_at": self.last_failure_at,
        }


class TransportRetryPolicy:
    """Repeat a whole validation attempt while the service cannot be reached.

    Unbounded unless ``max_attempts`` is set; the last transport error is
    re-raised once the cap is hit. Progress is visible through ``health``.
    """

    def __init__(
        self,
        wait_seconds: float = 60.0,
        max_attempts: Optional[int] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.wait_seconds = wait_seconds
        self.max_attempts = max_attempts
        self.health = TransportHealth()
        self._sleep = sleep

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_fixed(self.wait_seconds),
            stop=stop_after_attempt(self.max_attempts) if self.max_attempts else stop_never,
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def call(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        async for attempt in self.retrying():
            with attempt:
                try:
                    result = await fn(*args)
                except httpx.TransportError as exc:
                    logger.error("Could not reach validation service, retrying in %ss", self.wait_seconds)
                    self.health.record_failure(exc)
                    raise
        self.health.record_success()
        return result


__all__ = ["TransportHealth", "TransportRetryPolicy"]
