import pytest

from assembler.errors import ValidationError
from assembler.models.checks import FormattingSuggestion
from assembler.services import compliance


def test_fixed_requirements_in_order():
    assert compliance.REQUIREMENT_IDS == ("font", "margins", "spacing", "pagination", "caption", "signature")


def test_half_acknowledged():
    state = compliance.new_checklist()
    for rid in ("font", "margins", "spacing"):
        state = compliance.acknowledge(state, rid)
    assert compliance.checked_count(state) == 3
    assert compliance.completion_percentage(state) == 50
    assert not compliance.all_acknowledged(state)


def test_all_acknowledged():
    state = compliance.new_checklist()
    for rid in compliance.REQUIREMENT_IDS:
        state = compliance.acknowledge(state, rid)
    assert compliance.completion_percentage(state) == 100
    assert compliance.all_acknowledged(state)


def test_percentage_rounds():
    state = compliance.acknowledge(compliance.new_checklist(), "font")
    assert compliance.completion_percentage(state) == 17
    state = compliance.acknowledge(state, "caption")
    assert compliance.completion_percentage(state) == 33


def test_acknowledge_returns_new_version():
    first = compliance.new_checklist()
    second = compliance.acknowledge(first, "font")
    third = compliance.acknowledge(second, "font", checked=False)
    assert (first.version, second.version, third.version) == (0, 1, 2)
    assert not first.acknowledged["font"]
    assert second.acknowledged["font"]
    assert compliance.checked_count(third) == 0


def test_unknown_requirement():
    with pytest.raises(ValidationError):
        compliance.acknowledge(compliance.new_checklist(), "kerning")


@pytest.mark.parametrize("text", ["", "x" * 100_001])
async def test_analysis_text_bounds(text):
    with pytest.raises(ValidationError):
        await compliance.analyze_petition_text(text)


async def test_suggestions_do_not_touch_checklist(monkeypatch):
    async def fake(text):
        return [FormattingSuggestion(section="Font", issue="Mixed fonts", suggestion="Use 12pt Arial", severity="critical")]

    monkeypatch.setattr(compliance, "request_suggestions", fake)
    state = compliance.new_checklist()
    suggestions = await compliance.analyze_petition_text("Petition text")
    assert suggestions[0].severity == "critical"
    assert not compliance.all_acknowledged(state)
    assert state.version == 0
