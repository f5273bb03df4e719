"""Submit-and-poll protocol for validating one document."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional, Protocol

from ..errors import RetryBudgetExhausted, UnexpectedServiceStatus, ValidationTimeout
from .client import ServiceStatus
from .models import ValidationOutcome
from .retry import Sleeper, TransportRetryPolicy

logger = logging.getLogger(__name__)


class ValidationServiceClient(Protocol):
    async def send_settings(self, selectors: Mapping[str, str]) -> None: ...

    async def send_request(self, local_path: str) -> None: ...

    async def status_code(self) -> int: ...

    async def fetch_result(self) -> ValidationOutcome: ...


class ValidationProtocol:
    """Drive one document through the remote service.

    Each submission gets ``max_polls`` status checks ``poll_interval`` seconds
    apart. A needs-retry answer resubmits and restarts the countdown, at most
    ``max_retries`` times. Transport errors repeat the whole attempt through
    the retry policy.
    """

    def __init__(
        self,
        client: ValidationServiceClient,
        retry_policy: Optional[TransportRetryPolicy] = None,
        *,
        poll_interval: float = 10.0,
        max_polls: int = 30,
        max_retries: int = 2,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.client = client
        self.retry_policy = retry_policy or TransportRetryPolicy(sleep=sleep)
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.max_retries = max_retries
        self._sleep = sleep

    async def validate(self, local_path: str, selectors: Mapping[str, str]) -> ValidationOutcome:
        return await self.retry_policy.call(self._attempt, local_path, selectors)

    async def _submit(self, local_path: str, selectors: Mapping[str, str]) -> None:
        logger.info("Sending file to validator", extra={"path": local_path})
        await self.client.send_settings(selectors)
        await self.client.send_request(local_path)

    async def _attempt(self, local_path: str, selectors: Mapping[str, str]) -> ValidationOutcome:
        await self._submit(local_path, selectors)

        retries = 0
        polls = 0
        while polls < self.max_polls:
            code = await self.client.status_code()
            polls += 1
            status = ServiceStatus.from_status_code(code)

            if status is ServiceStatus.DONE:
                logger.info("Validation is finished", extra={"path": local_path, "polls": polls})
                return await self.client.fetch_result()

            if status is ServiceStatus.IN_PROGRESS:
                await self._sleep(self.poll_interval)
                continue

            if status is ServiceStatus.NEEDS_RETRY:
                retries += 1
                if retries > self.max_retries:
                    raise RetryBudgetExhausted(f"Failed to process document {local_path}")
                logger.warning(
                    "Validation was not finished, resubmitting", extra={"path": local_path, "retry": retries}
                )
                await self._submit(local_path, selectors)
                polls = 0
                continue

            raise UnexpectedServiceStatus(code)

        timeout = self.max_polls * self.poll_interval
        raise ValidationTimeout(f"Document {local_path} was not validated in time ({timeout:.0f} seconds)")


__all__ = ["ValidationProtocol", "ValidationServiceClient"]
