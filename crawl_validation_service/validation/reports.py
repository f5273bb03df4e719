"""Per-job report files written next to the crawl output."""

from __future__ import annotations

import json
from pathlib import Path

from .models import ValidationOutcome, ValidationTask

VALID_REPORT = "Valid_PDF_Report.txt"
INVALID_REPORT = "Invalid_PDF_Report.txt"


class ReportWriter:
    """Append one line per validated document.

    Valid documents are listed as ``<uri>, <last modified>``; invalid ones as
    a JSON object carrying the outcome.
    """

    def report_path(self, task: ValidationTask, is_valid: bool) -> Path:
        return Path(task.output_directory) / (VALID_REPORT if is_valid else INVALID_REPORT)

    def write(self, task: ValidationTask, outcome: ValidationOutcome) -> Path:
        path = self.report_path(task, outcome.is_valid)
        if outcome.is_valid:
            line = f"{task.source_uri}, {task.observed_at}"
        else:
            payload = outcome.model_dump(by_alias=True)
            payload.update({"url": task.source_uri, "lastModified": task.observed_at})
            line = json.dumps(payload)

        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
        return path


__all__ = ["INVALID_REPORT", "VALID_REPORT", "ReportWriter"]
