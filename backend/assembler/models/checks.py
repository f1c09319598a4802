from __future__ import annotations

import enum
from typing import Literal

from pydantic import BaseModel, Field

from assembler.models.filing import WireModel


class CheckStatus(str, enum.Enum):
    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"


class PreflightCheck(WireModel):
    id: str
    label: str
    status: CheckStatus = CheckStatus.PASSED
    message: str = ""


class PreflightReport(WireModel):
    checks: list[PreflightCheck]
    can_proceed: bool
    has_warnings: bool

    def status_of(self, check_id: str) -> CheckStatus:
        for check in self.checks:
            if check.id == check_id:
                return check.status
        raise KeyError(check_id)


class Requirement(WireModel):
    id: str
    label: str
    detail: str


class ChecklistState(WireModel):
    """acknowledgments keyed by requirement id; every change bumps `version`"""

    acknowledged: dict[str, bool] = {}
    version: int = 0


class FormattingSuggestion(BaseModel):
    section: str = Field(min_length=1)
    issue: str = Field(min_length=1)
    suggestion: str = Field(min_length=1)
    severity: Literal["critical", "warning", "info"]
