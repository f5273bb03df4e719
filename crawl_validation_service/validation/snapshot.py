"""On-disk snapshot of the pending validation queue."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, List

from .models import ValidationTask


class QueueSnapshotStore:
    """Persist the whole queue on every change.

    The snapshot is written to a sibling temporary file, flushed to disk and
    renamed over the previous one, so a crash leaves either the old or the new
    snapshot intact.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def read(self) -> List[ValidationTask]:
        if not self.path.exists():
            return []
        data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        return [ValidationTask.from_dict(item) for item in data]

    def write(self, tasks: Iterable[ValidationTask]) -> None:
        payload = json.dumps([task.to_dict() for task in tasks], indent=2)
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        tmp.replace(self.path)


__all__ = ["QueueSnapshotStore"]
