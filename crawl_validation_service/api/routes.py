"""FastAPI routes for the crawl validation service."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from ..jobs.models import JobReport
from ..services import Services
from ..validation.models import ValidationTask

router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


def _parse_date(value: Any) -> Any:
    if isinstance(value, str):
        if not value.strip():
            return None
        return datetime.strptime(value.strip(), "%d-%m-%Y").date()
    return value


ScheduledDate = Annotated[Optional[date], BeforeValidator(_parse_date)]


class JobReportResponse(BaseModel):
    job_id: str
    url: str
    status: str
    start_time: Optional[datetime] = None
    finish_time: Optional[datetime] = None
    result_url: str = ""
    engine_status: Optional[str] = None
    ledger: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_report(cls, report: JobReport) -> "JobReportResponse":
        return cls(**report.to_dict())


def _report_or_404(report: Optional[JobReport]) -> JobReportResponse:
    if report is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobReportResponse.from_report(report)


class StartJobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    domain: str = Field(..., min_length=1, description="URL or bare host to crawl")
    report_email: Optional[str] = Field(None, description="Notify this address when the crawl ends")
    scheduled_date: ScheduledDate = Field(None, alias="date", description="Advisory crawl date, dd-MM-yyyy")
    force_start: bool = Field(False, description="Replace an existing job for the same URL")


@router.post("/crawl-jobs", response_model=JobReportResponse)
async def start_job(payload: StartJobRequest, services: Services = Depends(get_services)) -> JobReportResponse:
    report = await services.manager.start_job(
        payload.domain,
        report_email=payload.report_email,
        scheduled_date=payload.scheduled_date,
        force=payload.force_start,
    )
    return JobReportResponse.from_report(report)


@router.get("/crawl-jobs", response_model=List[JobReportResponse])
async def list_jobs(services: Services = Depends(get_services)) -> List[JobReportResponse]:
    return [JobReportResponse.from_report(report) for report in services.manager.list_jobs()]


@router.get("/crawl-jobs/{job_id}", response_model=JobReportResponse)
async def get_job(job_id: str, services: Services = Depends(get_services)) -> JobReportResponse:
    return _report_or_404(await services.manager.get_job(job_id))


@router.post("/crawl-jobs/{job_id}/pause", response_model=JobReportResponse)
async def pause_job(job_id: str, services: Services = Depends(get_services)) -> JobReportResponse:
    return _report_or_404(await services.manager.pause_job(job_id))


@router.post("/crawl-jobs/{job_id}/unpause", response_model=JobReportResponse)
async def unpause_job(job_id: str, services: Services = Depends(get_services)) -> JobReportResponse:
    return _report_or_404(await services.manager.unpause_job(job_id))


@router.post("/crawl-jobs/{job_id}/terminate", response_model=JobReportResponse)
async def terminate_job(job_id: str, services: Services = Depends(get_services)) -> JobReportResponse:
    return _report_or_404(await services.manager.terminate_job(job_id))


@router.post("/crawl-jobs/{job_id}/restart", response_model=JobReportResponse)
async def restart_job(job_id: str, services: Services = Depends(get_services)) -> JobReportResponse:
    return _report_or_404(await services.manager.restart_job(job_id))


@router.delete("/crawl-jobs/{job_id}", response_model=JobReportResponse)
async def delete_job(job_id: str, services: Services = Depends(get_services)) -> JobReportResponse:
    return _report_or_404(await services.manager.delete_job(job_id))


class EmailRequest(BaseModel):
    email_address: Optional[str] = None


@router.post("/crawl-jobs/{job_id}/email", response_model=JobReportResponse)
async def set_report_email(
    job_id: str, payload: EmailRequest, services: Services = Depends(get_services)
) -> JobReportResponse:
    return _report_or_404(await services.manager.set_report_email(job_id, payload.email_address))


class BatchCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    domains: List[str] = Field(..., min_length=1, description="URLs or bare hosts to crawl")
    report_email: Optional[str] = None
    scheduled_date: ScheduledDate = Field(None, alias="date")


class BatchCreateResponse(BaseModel):
    batch_id: str
    job_count: int
    report_url: str
    message: str


@router.post("/batch", response_model=BatchCreateResponse)
async def start_batch(
    payload: BatchCreateRequest, request: Request, services: Services = Depends(get_services)
) -> BatchCreateResponse:
    batch = await services.batches.start_batch(payload.domains, payload.report_email, payload.scheduled_date)
    report_url = str(request.url_for("get_batch", batch_id=batch.batch_id))
    return BatchCreateResponse(
        batch_id=batch.batch_id,
        job_count=len(batch.member_urls),
        report_url=report_url,
        message=(
            f"Batch job successfully submitted. You can track it on {report_url}. "
            "Notification will be sent on the email address you provided when the job is finished."
        ),
    )


class BatchMemberResponse(BaseModel):
    url: str
    job_id: Optional[str]
    status: Optional[str]


class BatchReportResponse(BaseModel):
    batch_id: str
    finished: bool
    members: List[BatchMemberResponse]


@router.get("/batch/{batch_id}", response_model=BatchReportResponse)
async def get_batch(batch_id: str, services: Services = Depends(get_services)) -> BatchReportResponse:
    report = await services.batches.get_batch(batch_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Batch not found")
    return BatchReportResponse(
        batch_id=report.batch_id,
        finished=report.finished,
        members=[BatchMemberResponse(url=m.url, job_id=m.job_id, status=m.status) for m in report.members],
    )


class ValidationTaskRequest(BaseModel):
    uri: str = Field(..., description="Where the crawler found the document")
    filepath: str = Field(..., description="Temporary local copy of the document")
    job_directory: str = Field(..., description="Crawl output directory, <jobs>/<job id>/<launch>/mirror")
    time: Optional[str] = Field(None, description="Last-Modified reported for the document")


class QueueResponse(BaseModel):
    queue_size: int


@router.post("/validation", response_model=QueueResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_validation(
    payload: ValidationTaskRequest, services: Services = Depends(get_services)
) -> QueueResponse:
    task = ValidationTask(
        source_uri=payload.uri,
        local_path=payload.filepath,
        output_directory=payload.job_directory,
        observed_at=payload.time or "",
    )
    if services.registry.get(task.job_id or "") is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return QueueResponse(queue_size=services.queue.enqueue(task))


@router.get("/validation/queue")
async def validation_queue(services: Services = Depends(get_services)) -> Dict[str, Any]:
    return services.worker.health()


class OfficeFileRequest(BaseModel):
    file_url: str
    job_id: Optional[str] = None
    last_modified: Optional[str] = None


@router.post("/microsoft_office", status_code=status.HTTP_204_NO_CONTENT)
async def add_microsoft_office_file(payload: OfficeFileRequest, services: Services = Depends(get_services)) -> None:
    await services.manager.record_office_document(
        payload.job_id, payload.file_url, payload.last_modified, "microsoft_office"
    )


@router.post("/odf", status_code=status.HTTP_204_NO_CONTENT)
async def add_odf_file(payload: OfficeFileRequest, services: Services = Depends(get_services)) -> None:
    await services.manager.record_office_document(payload.job_id, payload.file_url, payload.last_modified, "odf")


class HealthResponse(BaseModel):
    status: str
    engine_available: bool
    validation: Dict[str, Any]
    timestamp: datetime


@router.get("/health", response_model=HealthResponse, include_in_schema=False)
async def health_check(services: Services = Depends(get_services)) -> HealthResponse:
    engine_available = await services.engine.is_available()
    validation = services.worker.health()
    healthy = engine_available and validation["running"] and validation["transport"]["healthy"]
    return HealthResponse(
        status="ok" if healthy else "degraded",
        engine_available=engine_available,
        validation=validation,
        timestamp=datetime.now(timezone.utc),
    )
