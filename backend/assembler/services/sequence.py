from assembler.models.filing import Event

MISSING_DATES = "{n} event(s) missing dates"
OUT_OF_ORDER = "Events are not in chronological order"


def find_out_of_order(events: list[Event]) -> list[tuple[Event, Event]]:
    """adjacent (earlier-entered, later-entered) pairs among dated events where
    the later entry carries the earlier date. entry order is preserved: the
    point is to catch a timeline typed out of sequence."""
    dated = [e for e in events if e.date is not None]
    return [
        (prev, cur)
        for prev, cur in zip(dated, dated[1:])
        if cur.date < prev.date
    ]


def verify_event_sequence(events: list[Event]) -> list[str]:
    violations: list[str] = []

    missing = sum(1 for e in events if e.date is None)
    if missing:
        violations.append(MISSING_DATES.format(n=missing))

    if find_out_of_order(events):
        violations.append(OUT_OF_ORDER)

    return violations
