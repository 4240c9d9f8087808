"""
Free-text hospital search: case-insensitive contains match over name/street/city/state plus a
"city country" split, re-ranked by how well the name matches.

Known limitation: the split happens at the last space, so a multi-word state or country such as
"Cross River" in "Calabar Cross River" mis-splits and only matches through the plain contains conditions.
"""
import re
from typing import Callable

from hospitofind.data.hospitals_repo import HospitalRecord, PatternCondition

MIN_TERM_LENGTH = 2
MAX_RESULTS = 100
_TEXT_COLUMNS = ("name", "street", "city", "state")

FindByPatterns = Callable[[list[list[PatternCondition]], int], list[HospitalRecord]]


class SearchTermError(ValueError):
    """Rejected search input; the message is safe to show to clients."""


def _contains(text: str) -> str:
    return "(?i)" + re.escape(text)


def _exact(text: str) -> str:
    return "(?i)^" + re.escape(text) + "$"


def term_conditions(term: str) -> list[list[PatternCondition]]:
    """Alternatives for a free-text term: any column contains it, or city/state split at the last space."""
    alternatives = [[PatternCondition(col, _contains(term))] for col in _TEXT_COLUMNS]
    if " " in term:
        city_part, _, country_part = term.rpartition(" ")
        city_part, country_part = city_part.strip(), country_part.strip()
        if len(city_part) > 1 and len(country_part) > 1:
            alternatives.append(
                [PatternCondition("city", _contains(city_part)), PatternCondition("state", _contains(country_part))]
            )
    return alternatives


def _match_rank(term_lower: str, name: str) -> int:
    name_lower = name.lower()
    if name_lower == term_lower:
        return 0
    if name_lower.startswith(term_lower):
        return 1
    if term_lower in name_lower:
        return 2
    return 3


def rank_by_name(term: str, hospitals: list[HospitalRecord]) -> list[HospitalRecord]:
    """Exact name match, then prefix, then substring; ties keep query order."""
    term_lower = term.lower()
    return sorted(hospitals, key=lambda h: _match_rank(term_lower, h.name))


def find_hospitals(
    *,
    term: str | None = None,
    city: str | None = None,
    state: str | None = None,
    find_by_patterns: FindByPatterns,
) -> list[HospitalRecord]:
    """
    Precision mode when both city and state are given: exact case-insensitive match on both,
    unranked. Otherwise `term` is required (at least 2 characters after trimming).
    """
    if city and city.strip() and state and state.strip():
        conditions = [[PatternCondition("city", _exact(city.strip())), PatternCondition("state", _exact(state.strip()))]]
        return find_by_patterns(conditions, MAX_RESULTS)

    if term is None or not term.strip():
        raise SearchTermError("Search term is required")
    term = term.strip()
    if len(term) < MIN_TERM_LENGTH:
        raise SearchTermError("Please enter at least 2 characters")
    matches = find_by_patterns(term_conditions(term), MAX_RESULTS)
    return rank_by_name(term, matches)
