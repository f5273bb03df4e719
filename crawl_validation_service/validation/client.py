"""HTTP client for the remote veraPDF validation service."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping, Optional

import httpx

from .models import ValidationOutcome

logger = logging.getLogger(__name__)


class ServiceStatus(str, Enum):
    DONE = "done"
    IN_PROGRESS = "in_progress"
    NEEDS_RETRY = "needs_retry"
    OTHER = "other"

    @classmethod
    def from_status_code(cls, code: int) -> "ServiceStatus":
        if code == 200:
            return cls.DONE
        if code in (102, 202):
            return cls.IN_PROGRESS
        if code == 100:
            return cls.NEEDS_RETRY
        return cls.OTHER


class VeraPDFServiceClient:
    """Thin wrapper over the service endpoints.

    ``httpx.TransportError`` propagates untouched so callers can tell an
    unreachable service apart from a misbehaving one.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send_settings(self, selectors: Mapping[str, str]) -> None:
        response = await self._client.post(f"{self.base_url}/properties", json=dict(selectors))
        response.raise_for_status()
        logger.debug("Validation settings have been sent")

    async def send_request(self, local_path: str) -> None:
        response = await self._client.post(
            self.base_url, content=local_path.encode("utf-8"), headers={"Content-Type": "text/plain"}
        )
        response.raise_for_status()
        logger.debug("Validation request has been sent", extra={"path": local_path})

    async def status_code(self) -> int:
        response = await self._client.get(self.base_url)
        return response.status_code

    async def fetch_result(self) -> ValidationOutcome:
        response = await self._client.get(self.base_url)
        response.raise_for_status()
        return ValidationOutcome.model_validate(response.json())


__all__ = ["ServiceStatus", "VeraPDFServiceClient"]
