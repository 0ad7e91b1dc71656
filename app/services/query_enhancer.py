"""Query rewriting that steers the upstream search towards local sources."""

from __future__ import annotations

# (trigger substrings, suffix) pairs; the first matching rule wins.
ENHANCEMENT_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("meeting", "council"), "Northstowe Town Council meeting schedule upcoming dates"),
    (("bin", "collection", "waste", "rubbish"), "Northstowe bin collection schedule next Friday"),
    (("bus", "transport", "travel"), "Northstowe bus transport timetable route"),
    (("open", "centre", "center", "facility"), "Northstowe opening times construction timeline"),
)

DEFAULT_SUFFIX = (
    "in Northstowe, Cambridgeshire, UK. Find specific current information, "
    "dates, times, schedules, contact details."
)


def enhance_query(query: str) -> str:
    """Append locality and task context to ``query``.

    Examples:
        >>> enhance_query("Next council meeting?")
        'Next council meeting? Northstowe Town Council meeting schedule upcoming dates'
        >>> enhance_query("Is there a dentist")
        'Is there a dentist in Northstowe, Cambridgeshire, UK. Find specific current information, dates, times, schedules, contact details.'
    """
    lowered = query.lower()
    for triggers, suffix in ENHANCEMENT_RULES:
        if any(trigger in lowered for trigger in triggers):
            return f"{query} {suffix}"
    return f"{query} {DEFAULT_SUFFIX}"
