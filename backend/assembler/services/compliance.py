"""CRC 2.111 formatting checklist.

the checklist is a fixed, ordered set of requirements the filer must
acknowledge before moving on. AI suggestions are advisory and live beside
the checklist, never inside it.
"""
import math

from assembler.errors import FieldError, ValidationError
from assembler.models.checks import ChecklistState, FormattingSuggestion, Requirement
from assembler.services.suggestions import request_suggestions

MAX_ANALYSIS_CHARS = 100_000

CRC_REQUIREMENTS: tuple[Requirement, ...] = (
    Requirement(
        id="font",
        label="Font: Arial or Palatino, 12-point minimum",
        detail="Main text must use approved fonts at specified size",
    ),
    Requirement(
        id="margins",
        label="Margins: 1-inch top/bottom, 1.5-inch left, 1-inch right",
        detail="Standard California court margin requirements",
    ),
    Requirement(
        id="spacing",
        label="Line Spacing: Double-spaced for pleadings",
        detail="Body text must be double-spaced per CRC 2.111",
    ),
    Requirement(
        id="pagination",
        label="Pagination: All pages numbered consecutively",
        detail="Page numbers required on all pages except cover",
    ),
    Requirement(
        id="caption",
        label="Caption: Proper court heading and case information",
        detail="Include court name, case number, and party names",
    ),
    Requirement(
        id="signature",
        label="Signature Block: Proper formatting with verification",
        detail="Include typed name, address, phone, and signature line",
    ),
)

REQUIREMENT_IDS = tuple(r.id for r in CRC_REQUIREMENTS)


def new_checklist() -> ChecklistState:
    return ChecklistState(acknowledged={rid: False for rid in REQUIREMENT_IDS})


def acknowledge(state: ChecklistState, requirement_id: str, checked: bool = True) -> ChecklistState:
    if requirement_id not in REQUIREMENT_IDS:
        raise ValidationError(f"unknown requirement: {requirement_id}")
    acknowledged = dict(state.acknowledged)
    acknowledged[requirement_id] = checked
    return ChecklistState(acknowledged=acknowledged, version=state.version + 1)


def checked_count(state: ChecklistState) -> int:
    # ids outside the fixed set never count
    return sum(1 for rid in REQUIREMENT_IDS if state.acknowledged.get(rid))


def completion_percentage(state: ChecklistState) -> int:
    # half-up, not banker's rounding
    return math.floor(checked_count(state) / len(CRC_REQUIREMENTS) * 100 + 0.5)


def all_acknowledged(state: ChecklistState) -> bool:
    return checked_count(state) == len(CRC_REQUIREMENTS)


async def analyze_petition_text(petition_text: str) -> list[FormattingSuggestion]:
    if not petition_text or len(petition_text) > MAX_ANALYSIS_CHARS:
        message = f"petition text must be between 1 and {MAX_ANALYSIS_CHARS} characters"
        raise ValidationError("Invalid request", [FieldError(field="petitionText", message=message)])
    return await request_suggestions(petition_text)
