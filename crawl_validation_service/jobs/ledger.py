"""Per-job error ledger shared between a crawl job and its validation tasks."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Dict, Mapping


class ErrorLedger:
    """Counts validation findings for one crawl job.

    The API reads the ledger while the validation worker updates it, so every
    access goes through a lock and readers only ever receive copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: Counter[str] = Counter()
        self._documents: Counter[str] = Counter()

    def increment(self, kind: str, count: int = 1) -> None:
        with self._lock:
            self._errors[kind] += count

    def merge(self, counts: Mapping[str, int]) -> None:
        with self._lock:
            self._errors.update(counts)

    def record_document(self, is_valid: bool) -> None:
        with self._lock:
            self._documents["valid" if is_valid else "invalid"] += 1

    def error_counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._errors)

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "errors": dict(self._errors),
                "valid_documents": self._documents["valid"],
                "invalid_documents": self._documents["invalid"],
            }

    def clear(self) -> None:
        with self._lock:
            self._errors.clear()
            self._documents.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(self._errors.values())


__all__ = ["ErrorLedger"]
