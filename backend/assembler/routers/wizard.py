from fastapi import APIRouter
from pydantic import BaseModel, Field

from assembler.services import wizard
from assembler.services.wizard import WizardState

router = APIRouter()


class AdvanceBody(BaseModel):
    state: WizardState = Field(default_factory=WizardState)
    step_input: dict = Field(default_factory=dict, alias="input")


@router.post("/advance")
async def advance_step(body: AdvanceBody) -> WizardState:
    # the client holds the state; each call returns the next value
    return wizard.advance(body.state, body.step_input)


@router.post("/back")
async def back_step(state: WizardState) -> WizardState:
    return wizard.back(state)
