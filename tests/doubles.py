"""In-memory stand-ins for the engine, repositories, notifier and validation service."""

from __future__ import annotations

import asyncio
import copy
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

import httpx

from crawl_validation_service.errors import EngineError
from crawl_validation_service.jobs.models import CrawlJob
from crawl_validation_service.validation.models import ValidationOutcome


class FakeEngine:
    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.calls: List[Tuple[str, str]] = []
        self.failing: Set[str] = set(failing)
        self.statuses: Dict[str, str] = {}
        self.available = True

    async def _call(self, action: str, job_id: str) -> None:
        self.calls.append((action, job_id))
        if action in self.failing:
            raise EngineError(action, job_id, "engine unavailable")

    def actions(self, job_id: Optional[str] = None) -> List[str]:
        return [action for action, target in self.calls if job_id is None or target == job_id]

    async def create(self, job_id: str, seed_urls: List[str]) -> None:
        await self._call("create", job_id)
        self.statuses.setdefault(job_id, "Active: RUNNING")

    async def build(self, job_id: str) -> None:
        await self._call("build", job_id)

    async def launch(self, job_id: str) -> None:
        await self._call("launch", job_id)

    async def pause(self, job_id: str) -> None:
        await self._call("pause", job_id)

    async def unpause(self, job_id: str) -> None:
        await self._call("unpause", job_id)

    async def terminate(self, job_id: str) -> None:
        await self._call("terminate", job_id)

    async def teardown(self, job_id: str) -> None:
        await self._call("teardown", job_id)

    async def status(self, job_id: str) -> str:
        await self._call("status", job_id)
        return self.statuses.get(job_id, "Active: RUNNING")

    async def result_location(self, job_id: str) -> str:
        await self._call("result_location", job_id)
        return f"https://heritrix.test/engine/anypath/jobs/{job_id}/latest/"

    async def is_available(self) -> bool:
        return self.available


class GatedEngine(FakeEngine):
    """Holds the gated actions after recording them until ``release()`` is called."""

    def __init__(self, gated: Iterable[str] = (), failing: Iterable[str] = ()) -> None:
        super().__init__(failing)
        self.gated: Set[str] = set(gated)
        self._gate: Optional[asyncio.Event] = None
        self.held = 0

    async def _call(self, action: str, job_id: str) -> None:
        await super()._call(action, job_id)
        if action in self.gated:
            if self._gate is None:
                self._gate = asyncio.Event()
            self.held += 1
            await self._gate.wait()

    def release(self) -> None:
        self.gated.clear()
        if self._gate is not None:
            self._gate.set()


class FakeJobRepository:
    def __init__(self, jobs: Iterable[CrawlJob] = ()) -> None:
        self.jobs: Dict[str, CrawlJob] = {job.job_id: job for job in jobs}
        self.saves: List[CrawlJob] = []
        self.removed: List[str] = []
        self.fail = False

    async def save_job(self, job: CrawlJob) -> None:
        if self.fail:
            raise RuntimeError("database down")
        snapshot = copy.copy(job)
        self.saves.append(snapshot)
        self.jobs[job.job_id] = snapshot

    async def remove_job(self, job_id: str) -> None:
        self.removed.append(job_id)
        self.jobs.pop(job_id, None)

    async def list_jobs(self) -> List[CrawlJob]:
        if self.fail:
            raise RuntimeError("database down")
        return list(self.jobs.values())


class FakeDocumentRepository:
    def __init__(self, selectors: Optional[Mapping[str, str]] = None) -> None:
        self.selectors = dict(selectors or {})
        self.documents: List[Dict[str, object]] = []
        self.errors: List[Tuple[str, str, str]] = []
        self.properties: List[Tuple[str, str, Optional[str]]] = []
        self.processing_errors: List[Tuple[str, str]] = []

    async def property_selectors(self) -> Dict[str, str]:
        return dict(self.selectors)

    async def record_document(
        self,
        url: str,
        job_id: Optional[str],
        *,
        kind: str = "pdf",
        last_modified: Optional[str] = None,
        is_valid: Optional[bool] = None,
    ) -> None:
        self.documents.append(
            {"url": url, "job_id": job_id, "kind": kind, "last_modified": last_modified, "is_valid": is_valid}
        )

    async def add_error(self, url: str, rule_id: str, message: str) -> None:
        self.errors.append((url, rule_id, message))

    async def add_property(self, url: str, name: str, value: Optional[str]) -> None:
        self.properties.append((url, name, value))

    async def add_processing_error(self, url: str, message: str) -> None:
        self.processing_errors.append((url, message))


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []

    async def send(self, recipient: str, subject: str, body: str) -> None:
        self.sent.append((recipient, subject, body))


class FakeSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


class ScriptedServiceClient:
    """Answers status polls from a script; the last code repeats once the script runs out."""

    def __init__(
        self,
        codes: Iterable[int],
        outcome: Optional[ValidationOutcome] = None,
        *,
        unreachable_for: int = 0,
    ) -> None:
        self.codes = list(codes)
        self.outcome = outcome or ValidationOutcome(is_valid=True)
        self.unreachable_for = unreachable_for
        self.settings_sent: List[Dict[str, str]] = []
        self.requests: List[str] = []
        self.polls = 0

    async def send_settings(self, selectors: Mapping[str, str]) -> None:
        if self.unreachable_for > 0:
            self.unreachable_for -= 1
            raise httpx.ConnectError("connection refused")
        self.settings_sent.append(dict(selectors))

    async def send_request(self, local_path: str) -> None:
        self.requests.append(local_path)

    async def status_code(self) -> int:
        index = min(self.polls, len(self.codes) - 1)
        self.polls += 1
        return self.codes[index]

    async def fetch_result(self) -> ValidationOutcome:
        return self.outcome
