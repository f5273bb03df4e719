"""Interface the lifecycle manager expects from a crawl engine."""

from __future__ import annotations

from typing import List, Protocol


class CrawlEngine(Protocol):
    """Every method raises ``EngineError`` when the engine call fails."""

    async def create(self, job_id: str, seed_urls: List[str]) -> None: ...

    async def build(self, job_id: str) -> None: ...

    async def launch(self, job_id: str) -> None: ...

    async def pause(self, job_id: str) -> None: ...

    async def unpause(self, job_id: str) -> None: ...

    async def terminate(self, job_id: str) -> None: ...

    async def teardown(self, job_id: str) -> None: ...

    async def status(self, job_id: str) -> str: ...

    async def result_location(self, job_id: str) -> str: ...

    async def is_available(self) -> bool: ...


__all__ = ["CrawlEngine"]
