"""Document validation pipeline."""

from .client import ServiceStatus, VeraPDFServiceClient
from .models import RuleViolation, ValidationOutcome, ValidationTask
from .protocol import ValidationProtocol
from .queue import ValidationQueue
from .retry import TransportHealth, TransportRetryPolicy
from .snapshot import QueueSnapshotStore
from .worker import ValidationWorker

__all__ = [
    "ServiceStatus",
    "VeraPDFServiceClient",
    "RuleViolation",
    "ValidationOutcome",
    "ValidationTask",
    "ValidationProtocol",
    "ValidationQueue",
    "TransportHealth",
    "TransportRetryPolicy",
    "QueueSnapshotStore",
    "ValidationWorker",
]
