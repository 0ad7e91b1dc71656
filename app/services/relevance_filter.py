"""Keyword/pattern classifier deciding whether a question is about Northstowe.

The filter is deliberately permissive: anything naming a local service or
amenity is accepted, short follow-up questions ("when does it open?") are
accepted on a question word alone, and a handful of generic "when/where/how"
shapes are accepted regardless of length.
"""

from __future__ import annotations

import re

LOCALITY_NAMES: tuple[str, ...] = ("northstowe", "north stowe")

LOCALITY_KEYWORDS: tuple[str, ...] = (
    "northstowe", "north stowe", "cambridge", "cambridgeshire",
    "town council", "community", "local", "neighbourhood",
    "gp", "doctor", "surgery", "medical", "health",
    "school", "education", "primary school", "secondary school",
    "transport", "bus", "train", "cycling", "walking",
    "shops", "shopping", "supermarket", "tesco", "pharmacy",
    "library", "community centre", "church", "facilities",
    "housing", "development", "planning", "construction",
    "park", "green space", "recreation", "sport",
    "police", "fire service", "emergency services",
    "unity centre", "unity center", "cabin", "community hub",
    "cycle path", "guided busway", "phase",
    "bin collection", "bins", "rubbish", "recycling", "waste",
    "refuse", "collection day", "black bin", "blue bin", "green bin",
    "heron road", "road", "street", "avenue", "close", "way",
)

FOLLOW_UP_KEYWORDS: tuple[str, ...] = (
    "when", "where", "how", "what", "who", "why", "which",
    "opening", "available", "cost", "price", "time", "date",
    "contact", "phone", "email", "address", "location",
    "more information", "details", "update", "status",
    "it", "this", "that", "they", "there", "here",
    "also", "additionally", "furthermore", "moreover",
    "nearest", "closest", "best", "recommended",
)

LOCAL_SERVICE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"when.*(open|close|available)",
        r"where.*(is|are|can)",
        r"how.*(get|reach|contact)",
        r"what.*(time|day|hour)",
        r"is.*(open|available|ready)",
        r"are.*(there|any|open)",
    )
)

FOLLOW_UP_MAX_CHARS = 50


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def is_locality_related(query: str, *, follow_up_max_chars: int = FOLLOW_UP_MAX_CHARS) -> bool:
    """Return True when ``query`` looks like a question about Northstowe.

    Checks, in order: the place name, the locality keyword list, follow-up
    keywords (only for queries of at most ``follow_up_max_chars`` characters
    after stripping), then the generic local-service patterns. All matching
    is case-insensitive substring/regex search.

    Args:
        query: Free-text user question.
        follow_up_max_chars: Length threshold for the follow-up keyword rule.

    Returns:
        bool: Whether the query is in scope.
    """
    lowered = query.lower()

    if _contains_any(lowered, LOCALITY_NAMES):
        return True

    if _contains_any(lowered, LOCALITY_KEYWORDS):
        return True

    if len(query.strip()) <= follow_up_max_chars and _contains_any(lowered, FOLLOW_UP_KEYWORDS):
        return True

    return any(pattern.search(query) for pattern in LOCAL_SERVICE_PATTERNS)
