"""Availability checking logic.

Cross-references the watched store identifiers against a directory snapshot
and emits one AvailabilityEvent per watched store found in it.  Stores that
are not in the snapshot are skipped: coverage legitimately varies by region.

By default every cycle re-emits (and re-notifies) stores that are still
available.  AvailabilityLatch can be used to notify only once per
availability streak.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Set
import logging

from .directory import Location, StoreSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityEvent:
    store_id: str
    name: str
    address: str
    available: bool

    @classmethod
    def from_location(cls, loc: Location) -> "AvailabilityEvent":
        return cls(
            store_id=loc.id,
            name=loc.name,
            address=loc.address,
            available=loc.product_availability,
        )


class AvailabilityLatch:
    """Tracks which stores have already been notified during their current streak."""

    def __init__(self) -> None:
        self._notified: Set[str] = set()

    def should_notify(self, event: AvailabilityEvent) -> bool:
        """Return True only on the first available sighting after an unavailable one."""
        if not event.available:
            self._notified.discard(event.store_id)
            return False
        if event.store_id in self._notified:
            return False
        self._notified.add(event.store_id)
        return True


def check_availability(snapshot: StoreSnapshot, watch_list: Iterable[str]) -> List[AvailabilityEvent]:
    """Return events for watched stores present in ``snapshot``, in watch-list order."""
    events: List[AvailabilityEvent] = []
    seen: Set[str] = set()
    for store_id in watch_list:
        if store_id in seen:
            continue
        seen.add(store_id)
        loc = snapshot.find(store_id)
        if loc is None:
            logger.debug("Store %s not present in snapshot; skipping", store_id)
            continue
        events.append(AvailabilityEvent.from_location(loc))
    return events


__all__ = [
    "AvailabilityEvent",
    "AvailabilityLatch",
    "check_availability",
]
