"""Prometheus metrics and monitoring utilities."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

JOB_TRANSITIONS_TOTAL = Counter(
    "crawl_validation_job_transitions_total", "Crawl job state transitions", ["status"]
)
ENGINE_ERRORS_TOTAL = Counter("crawl_validation_engine_errors_total", "Failed crawl engine calls", ["action"])
NOTIFICATIONS_SENT = Counter("crawl_validation_notifications_total", "Job notifications", ["result"])
VALIDATION_TASKS_ENQUEUED = Counter("crawl_validation_tasks_enqueued_total", "Validation tasks enqueued")
VALIDATION_TASKS_PROCESSED = Counter(
    "crawl_validation_tasks_processed_total", "Validation tasks processed", ["outcome"]
)
VALIDATION_QUEUE_SIZE = Gauge("crawl_validation_queue_size", "Pending validation tasks")
VALIDATION_TRANSPORT_FAILURES = Counter(
    "crawl_validation_transport_failures_total", "Validation service unreachable"
)
VALIDATION_SERVICE_REACHABLE = Gauge(
    "crawl_validation_service_reachable", "1 while the validation service answers, 0 while retrying"
)
VALIDATION_LATENCY = Histogram(
    "crawl_validation_duration_seconds",
    "Time to validate one document",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800),
)

metrics_router = APIRouter()


@metrics_router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "JOB_TRANSITIONS_TOTAL",
    "ENGINE_ERRORS_TOTAL",
    "NOTIFICATIONS_SENT",
    "VALIDATION_TASKS_ENQUEUED",
    "VALIDATION_TASKS_PROCESSED",
    "VALIDATION_QUEUE_SIZE",
    "VALIDATION_TRANSPORT_FAILURES",
    "VALIDATION_SERVICE_REACHABLE",
    "VALIDATION_LATENCY",
    "metrics_router",
]
