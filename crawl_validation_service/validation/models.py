"""Validation tasks and outcomes."""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


@dataclass
class ValidationTask:
    source_uri: str
    local_path: str
    output_directory: str
    observed_at: str = ""

    @property
    def job_id(self) -> Optional[str]:
        """Owning crawl job, the third-from-last segment of ``<jobs>/<id>/<launch>/mirror``."""

        parts = [part for part in PurePosixPath(self.output_directory).parts if part != "/"]
        if len(parts) < 3:
            return None
        return parts[-3]

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationTask":
        return cls(
            source_uri=data["source_uri"],
            local_path=data["local_path"],
            output_directory=data["output_directory"],
            observed_at=data.get("observed_at") or "",
        )


class RuleViolation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rule_id: str = Field(..., alias="ruleId")
    message: str = ""

    @model_validator(mode="before")
    @classmethod
    def _compose_rule_id(cls, data: Any) -> Any:
        # veraPDF reports rules as specification/clause/testNumber
        if isinstance(data, dict) and "ruleId" not in data and "rule_id" not in data:
            pieces = [str(data[key]) for key in ("specification", "clause", "testNumber") if data.get(key)]
            data = {**data, "ruleId": "-".join(pieces) or "unknown"}
            if "message" not in data and "description" in data:
                data["message"] = data["description"]
        return data


class ValidationOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(False, alias="valid")
    errors: List[RuleViolation] = Field(default_factory=list, alias="validationErrors")
    properties: Dict[str, Any] = Field(default_factory=dict)
    processing_error: Optional[str] = Field(None, alias="processingError")

    @classmethod
    def failed(cls, message: str) -> "ValidationOutcome":
        return cls(is_valid=False, processing_error=message)

    def error_counts(self) -> Dict[str, int]:
        return dict(Counter(error.rule_id for error in self.errors))


__all__ = ["RuleViolation", "ValidationOutcome", "ValidationTask"]
