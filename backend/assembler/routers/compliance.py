from fastapi import APIRouter
from pydantic import BaseModel, Field

from assembler.models.checks import ChecklistState, FormattingSuggestion, Requirement
from assembler.services import compliance

router = APIRouter()


class AnalyzeBody(BaseModel):
    petition_text: str = Field("", alias="petitionText")


class SuggestionsResponse(BaseModel):
    suggestions: list[FormattingSuggestion]


@router.get("/requirements")
async def list_requirements() -> list[Requirement]:
    return list(compliance.CRC_REQUIREMENTS)


@router.post("/checklist")
async def checklist_status(state: ChecklistState):
    return {
        "version": state.version,
        "checkedCount": compliance.checked_count(state),
        "completionPercentage": compliance.completion_percentage(state),
        "allAcknowledged": compliance.all_acknowledged(state),
    }


@router.post("/analyze")
async def analyze(body: AnalyzeBody) -> SuggestionsResponse:
    return SuggestionsResponse(suggestions=await compliance.analyze_petition_text(body.petition_text))
