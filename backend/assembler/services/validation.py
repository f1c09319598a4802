import logging

from pydantic import ValidationError as PydanticValidationError

from assembler.errors import FieldError, ValidationError
from assembler.models.filing import FilingCase

logger = logging.getLogger(__name__)


def validate_filing_data(raw) -> FilingCase:
    """structural gate in front of everything else. fails closed: any
    violation raises ValidationError carrying one FieldError per problem."""
    if isinstance(raw, FilingCase):
        return raw
    if not isinstance(raw, dict):
        raise ValidationError(
            "Missing required filing data fields",
            [FieldError(field="filingData", message="filing data must be an object")],
        )

    try:
        return FilingCase.model_validate(raw)
    except PydanticValidationError as exc:
        errors = to_field_errors(exc.errors())
        logger.info("filing data rejected with %d field error(s)", len(errors))
        raise ValidationError("Invalid filing data", errors) from None


def to_field_errors(errors) -> list[FieldError]:
    """pydantic / fastapi error dicts -> FieldError with dotted wire paths"""
    return [FieldError(field=_field_path(err["loc"]), message=_message(err)) for err in errors]


def _field_path(loc) -> str:
    parts = list(loc)
    if parts and parts[0] == "body":
        parts = parts[1:]
    return ".".join(str(part) for part in parts) or "filingData"


def _message(err: dict) -> str:
    # custom validators surface as "Value error, <text>"; keep only the text
    ctx = err.get("ctx") or {}
    if err["type"] == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return err["msg"]
