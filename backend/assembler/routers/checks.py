from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from assembler.models.checks import PreflightReport
from assembler.models.filing import MAX_EVENTS, Event
from assembler.services.preflight import run_preflight
from assembler.services.sequence import find_out_of_order, verify_event_sequence
from assembler.services.validation import validate_filing_data

router = APIRouter()


class EventsBody(BaseModel):
    events: list[Event] = Field(default_factory=list, max_length=MAX_EVENTS)


class PreflightBody(BaseModel):
    filing_data: Any = Field(None, alias="filingData")


@router.post("/events")
async def check_events(body: EventsBody):
    violations = verify_event_sequence(body.events)
    return {
        "valid": not violations,
        "violations": violations,
        "outOfOrder": [
            {"earlierEnteredId": prev.id, "laterEnteredId": cur.id}
            for prev, cur in find_out_of_order(body.events)
        ],
    }


@router.post("/preflight")
async def check_preflight(body: PreflightBody) -> PreflightReport:
    return run_preflight(validate_filing_data(body.filing_data))
