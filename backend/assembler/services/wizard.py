"""Filing wizard as an explicit state machine.

the wizard state is a value: every step is a pure function
(state, input) -> new state, and a step's gate must pass before the
state moves on. nothing here touches storage.
"""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from assembler.errors import FieldError, ValidationError
from assembler.models.checks import ChecklistState
from assembler.models.filing import Event, ExhibitCollection, WireModel
from assembler.services import compliance
from assembler.services.preflight import run_preflight
from assembler.services.sequence import verify_event_sequence
from assembler.services.validation import to_field_errors, validate_filing_data

STEPS = ("intro", "esv", "crc", "exhibits", "preflight", "generate")


class WizardData(WireModel):
    """what the filer has accumulated so far, merged into by each step"""

    case: dict = {}
    events: tuple[Event, ...] = ()
    checklist: ChecklistState = Field(default_factory=compliance.new_checklist)
    exhibits: ExhibitCollection = ExhibitCollection()


class WizardState(WireModel):
    step: Literal["intro", "esv", "crc", "exhibits", "preflight", "generate"] = "intro"
    data: WizardData = WizardData()
    version: int = 0

    @property
    def step_index(self) -> int:
        return STEPS.index(self.step)

    @property
    def finished(self) -> bool:
        return self.step == STEPS[-1]


def filing_payload(data: WizardData) -> dict:
    """the create-job payload assembled from the wizard's data"""
    payload = dict(data.case)
    payload["events"] = [e.model_dump(mode="json", by_alias=True) for e in data.events]
    payload["exhibits"] = [
        e.model_dump(mode="json", by_alias=True) for e in data.exhibits.to_filing_exhibits()
    ]
    return payload


def _gate_esv(data: WizardData):
    violations = verify_event_sequence(list(data.events))
    if violations:
        raise ValidationError(", ".join(violations))


def _gate_crc(data: WizardData):
    if not compliance.all_acknowledged(data.checklist):
        raise ValidationError(
            f"All CRC 2.111 requirements must be acknowledged "
            f"({compliance.checked_count(data.checklist)}/{len(compliance.CRC_REQUIREMENTS)})"
        )


def _gate_preflight(data: WizardData):
    report = run_preflight(validate_filing_data(filing_payload(data)))
    if not report.can_proceed:
        failed = [c.label for c in report.checks if c.status.value == "failed"]
        raise ValidationError(f"Preflight failed: {', '.join(failed)}")


_GATES = {
    "esv": _gate_esv,
    "crc": _gate_crc,
    "preflight": _gate_preflight,
}


def advance(state: WizardState, step_input: dict | None = None) -> WizardState:
    """merge the current step's input, run its gate, move to the next step.
    on a failed gate the ValidationError propagates and `state` is untouched."""
    if state.finished:
        raise ValidationError("wizard is already at the final step")

    data = _merge(state.data, step_input) if step_input else state.data
    gate = _GATES.get(state.step)
    if gate is not None:
        gate(data)

    return WizardState(step=STEPS[state.step_index + 1], data=data, version=state.version + 1)


def back(state: WizardState) -> WizardState:
    if state.step_index == 0:
        return state
    return state.model_copy(update={"step": STEPS[state.step_index - 1], "version": state.version + 1})


def _merge(data: WizardData, step_input: dict) -> WizardData:
    """fold a step's input into the accumulated data, validating it the same
    way whether it arrives as models or as wire-shaped dicts"""
    unknown = sorted(set(step_input) - set(WizardData.model_fields))
    if unknown:
        raise ValidationError(
            "Invalid wizard input",
            [FieldError(field=key, message="not a wizard field") for key in unknown],
        )
    try:
        return WizardData.model_validate({**data.model_dump(), **step_input})
    except PydanticValidationError as exc:
        raise ValidationError("Invalid wizard input", to_field_errors(exc.errors())) from None
