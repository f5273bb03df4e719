"""Monitoring helpers."""

from .metrics import (
    ENGINE_ERRORS_TOTAL,
    JOB_TRANSITIONS_TOTAL,
    NOTIFICATIONS_SENT,
    VALIDATION_LATENCY,
    VALIDATION_QUEUE_SIZE,
    VALIDATION_SERVICE_REACHABLE,
    VALIDATION_TASKS_ENQUEUED,
    VALIDATION_TASKS_PROCESSED,
    VALIDATION_TRANSPORT_FAILURES,
    metrics_router,
)

__all__ = [
    "ENGINE_ERRORS_TOTAL",
    "JOB_TRANSITIONS_TOTAL",
    "NOTIFICATIONS_SENT",
    "VALIDATION_LATENCY",
    "VALIDATION_QUEUE_SIZE",
    "VALIDATION_SERVICE_REACHABLE",
    "VALIDATION_TASKS_ENQUEUED",
    "VALIDATION_TASKS_PROCESSED",
    "VALIDATION_TRANSPORT_FAILURES",
    "metrics_router",
]
