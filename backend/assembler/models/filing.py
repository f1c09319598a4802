from __future__ import annotations

import datetime as dt
import re

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_EVENTS = 100
MAX_EXHIBITS = 50
MAX_OFFICIAL_FORMS = 20
MAX_PETITION_CHARS = 50_000

ZIP_PATTERN = r"^\d{5}(-?\d{4})?$"
_PHONE_SEPARATORS = re.compile(r"[\s().-]")


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class CaseInfo(WireModel):
    court_name: str = Field(min_length=1)
    county: str = Field(min_length=1)
    case_number: str = ""  # assigned by the clerk on first filing
    judge_name: str = ""


class Petitioner(WireModel):
    name: str = Field(min_length=1)
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = Field(pattern=ZIP_PATTERN)
    phone: str
    email: EmailStr

    @field_validator("phone")
    @classmethod
    def _ten_digits(cls, value: str) -> str:
        digits = _PHONE_SEPARATORS.sub("", value)
        if not re.fullmatch(r"\d{10}", digits):
            raise ValueError("phone must be exactly 10 digits")
        return digits


class Event(WireModel):
    id: str = Field(min_length=1)
    date: dt.date | None = None
    description: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class Exhibit(WireModel):
    id: str = Field(min_length=1)
    label: str = ""
    description: str = ""
    file_ref: str = Field("", validation_alias=AliasChoices("fileRef", "fileUrl", "file_ref"))
    file_name: str = ""
    page_count: int | None = None


class OfficialForm(WireModel):
    id: str = Field(min_length=1)
    form_number: str = Field(min_length=1)
    form_name: str = ""
    file_url: str = ""


class FilingCase(WireModel):
    case_info: CaseInfo
    petitioner: Petitioner
    events: list[Event] = Field(default_factory=list, max_length=MAX_EVENTS)
    petition_body: str = Field(min_length=1, max_length=MAX_PETITION_CHARS)
    exhibits: list[Exhibit] = Field(default_factory=list, max_length=MAX_EXHIBITS)
    official_forms: list[OfficialForm] = Field(default_factory=list, max_length=MAX_OFFICIAL_FORMS)

    @field_validator("events")
    @classmethod
    def _unique_event_ids(cls, events: list[Event]) -> list[Event]:
        seen: set[str] = set()
        for event in events:
            if event.id in seen:
                raise ValueError(f"duplicate event id: {event.id}")
            seen.add(event.id)
        return events

    @field_validator("petition_body")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("petition body must not be blank")
        return value

    def snapshot(self) -> dict:
        """json-safe copy stored on the job; the job never reads back the live case"""
        return self.model_dump(mode="json", by_alias=True)


class ExhibitEntry(WireModel):
    id: str
    label: str
    description: str = ""
    file_ref: str = ""
    file_name: str = ""
    content_type: str = ""
    size_bytes: int = 0

    @property
    def title(self) -> str:
        return f"Exhibit {self.label}"


class ExhibitCollection(WireModel):
    """exhibits in entry order. `sequence` counts every exhibit ever added
    and drives lettering, so labels stay unique across removals."""

    exhibits: tuple[ExhibitEntry, ...] = ()
    sequence: int = 0
    version: int = 0

    def get(self, exhibit_id: str) -> ExhibitEntry | None:
        for exhibit in self.exhibits:
            if exhibit.id == exhibit_id:
                return exhibit
        return None

    def to_filing_exhibits(self) -> list[Exhibit]:
        return [
            Exhibit(
                id=e.id, label=e.label, description=e.description,
                file_ref=e.file_ref, file_name=e.file_name,
            )
            for e in self.exhibits
        ]
