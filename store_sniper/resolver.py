"""City lookup over a store directory snapshot.

An exact (case-insensitive) city match returns the stores of that city.
Otherwise the closest city names by Levenshtein distance are suggested.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from .directory import Location, StoreSnapshot

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3


@dataclass(frozen=True)
class CityResolution:
    exact_matches: Tuple[Location, ...] = ()
    suggestions: Tuple[str, ...] = ()

    @property
    def found(self) -> bool:
        return bool(self.exact_matches)


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost insertions, deletions and substitutions."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,                # deletion
                current[j - 1] + 1,             # insertion
                previous[j - 1] + (ca != cb),   # substitution
            ))
        previous = current
    return previous[-1]


def suggest_cities(query: str, snapshot: StoreSnapshot, limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Closest distinct cities to ``query``, nearest first, ties in first-seen order."""
    needle = query.strip().lower()
    ranked = sorted(
        snapshot.cities(),
        key=lambda city: levenshtein(needle, city.lower()),
    )
    return ranked[:limit]


def resolve_city(query: str, snapshot: StoreSnapshot, limit: int = MAX_SUGGESTIONS) -> CityResolution:
    needle = query.strip().lower()
    matches = tuple(loc for loc in snapshot if loc.city.lower() == needle)
    if matches:
        logger.debug("City %r matched %d stores", query, len(matches))
        return CityResolution(exact_matches=matches)

    suggestions = tuple(suggest_cities(query, snapshot, limit))
    logger.debug("No store in city %r; suggestions: %s", query, ", ".join(suggestions) or "none")
    return CityResolution(suggestions=suggestions)


__all__ = ["CityResolution", "levenshtein", "suggest_cities", "resolve_city"]
