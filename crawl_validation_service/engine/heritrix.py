"""Heritrix 3 REST API client."""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import List, Optional
from xml.etree import ElementTree

import httpx

from ..config import Settings
from ..errors import EngineError

logger = logging.getLogger(__name__)

SEEDS_MARKER = "@SEEDS@"


def load_config_template(path: Optional[Path] = None) -> str:
    if path is not None:
        return path.read_text(encoding="utf-8")
    return resources.files(__package__).joinpath("templates/crawler-beans.cxml").read_text(encoding="utf-8")


class HeritrixClient:
    """Drives crawl jobs through the Heritrix engine endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        user: str,
        password: str,
        jobs_dir: str = "jobs",
        config_template: Optional[str] = None,
        verify_tls: bool = False,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.jobs_dir = jobs_dir.strip("/")
        self._config_template = config_template
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.DigestAuth(user, password),
            verify=verify_tls,
            timeout=timeout,
            headers={"Accept": "application/xml"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "HeritrixClient":
        return cls(
            settings.heritrix_url,
            user=settings.heritrix_user,
            password=settings.heritrix_password,
            jobs_dir=settings.heritrix_jobs_dir,
            config_template=load_config_template(settings.engine_config_template),
            verify_tls=settings.heritrix_verify_tls,
            timeout=settings.request_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, action: str, job_id: Optional[str], method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise EngineError(action, job_id, str(exc) or type(exc).__name__) from exc
        return response

    async def _job_action(self, job_id: str, action: str) -> None:
        await self._request(action, job_id, "POST", f"/engine/job/{job_id}", data={"action": action})
        logger.info("Heritrix job action sent", extra={"job_id": job_id, "action": action})

    def _render_config(self, seed_urls: List[str]) -> str:
        template = self._config_template if self._config_template is not None else load_config_template()
        self._config_template = template
        return template.replace(SEEDS_MARKER, "\n".join(seed_urls))

    async def create(self, job_id: str, seed_urls: List[str]) -> None:
        await self._request("create", job_id, "POST", "/engine", data={"action": "create", "createpath": job_id})
        await self._request(
            "configure",
            job_id,
            "PUT",
            f"/engine/job/{job_id}/jobdir/crawler-beans.cxml",
            content=self._render_config(seed_urls).encode("utf-8"),
            headers={"Content-Type": "application/xml"},
        )
        logger.info("Heritrix job created", extra={"job_id": job_id, "seeds": seed_urls})

    async def build(self, job_id: str) -> None:
        await self._job_action(job_id, "build")

    async def launch(self, job_id: str) -> None:
        await self._job_action(job_id, "launch")

    async def pause(self, job_id: str) -> None:
        await self._job_action(job_id, "pause")

    async def unpause(self, job_id: str) -> None:
        await self._job_action(job_id, "unpause")

    async def terminate(self, job_id: str) -> None:
        await self._job_action(job_id, "terminate")

    async def teardown(self, job_id: str) -> None:
        await self._job_action(job_id, "teardown")

    async def status(self, job_id: str) -> str:
        response = await self._request("status", job_id, "GET", f"/engine/job/{job_id}")
        try:
            root = ElementTree.fromstring(response.content)
        except ElementTree.ParseError as exc:
            raise EngineError("status", job_id, f"unparseable job document: {exc}") from exc
        description = root.findtext("statusDescription") or root.findtext("crawlControllerState")
        if not description:
            raise EngineError("status", job_id, "job document has no status")
        return description.strip()

    async def result_location(self, job_id: str) -> str:
        return f"{self.base_url}/engine/anypath/{self.jobs_dir}/{job_id}/latest/"

    async def is_available(self) -> bool:
        try:
            await self._request("ping", None, "GET", "/engine")
        except EngineError as exc:
            logger.warning("Heritrix is not available: %s", exc)
            return False
        return True


__all__ = ["HeritrixClient", "SEEDS_MARKER", "load_config_template"]
