"""Polling loop.

One cycle: read settings from the state store, fetch a fresh directory
snapshot, check the watched stores, report every result and notify the
available ones.  Between cycles a one-second countdown runs for the saved
interval.  The countdown waits on a stop event so the loop can be shut down
cleanly from a signal handler or another thread.
"""
from __future__ import annotations

import datetime as _dt
import logging
import threading
from typing import Callable, List, Optional

import requests

from . import config
from .checker import AvailabilityEvent, AvailabilityLatch, check_availability
from .directory import StoreSnapshot, fetch_snapshot
from .notifier import dispatch_events
from .state import FileStateStore
from .utils import DecodeError, EmptyWatchListError, ProtocolError, TransportError

logger = logging.getLogger(__name__)

FETCH_ERRORS = (TransportError, ProtocolError, DecodeError)


def log_event(event: AvailabilityEvent) -> None:
    logger.info(
        "Store ID: %s, Name and Address: %s %s, Availability: %s",
        event.store_id, event.name, event.address, event.available,
    )


class PollingScheduler:
    def __init__(
        self,
        store: FileStateStore,
        *,
        session: Optional[requests.Session] = None,
        fetch: Callable[..., StoreSnapshot] = fetch_snapshot,
        on_event: Callable[[AvailabilityEvent], None] = log_event,
        on_tick: Optional[Callable[[int], None]] = None,
        notify_once: bool = config.NOTIFY_ONCE,
        stop_on_fetch_error: bool = config.FETCH_ERRORS_FATAL,
        tick_seconds: float = 1.0,
    ) -> None:
        self.store = store
        self.session = session
        self.fetch = fetch
        self.on_event = on_event
        self.on_tick = on_tick
        self.latch = AvailabilityLatch() if notify_once else None
        self.stop_on_fetch_error = stop_on_fetch_error
        self.tick_seconds = tick_seconds
        self._stop = threading.Event()
        self.cycles = 0

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> None:
        """Run cycles until stop() is called.

        Raises EmptyWatchListError before the first cycle when nothing is
        watched.  Fetch errors propagate when ``stop_on_fetch_error`` is set.
        """
        if not self.store.load_watch_list():
            raise EmptyWatchListError("Store ID list is empty; add a store before starting")

        logger.info("Starting availability monitor")
        while not self._stop.is_set():
            self.run_cycle()
            if self._stop.is_set():
                break
            self.countdown(self._interval_seconds())
        logger.info("Availability monitor stopped after %d cycles", self.cycles)

    def run_cycle(self) -> List[AvailabilityEvent]:
        """Perform one fetch-check-notify pass and return its events."""
        watch_list = self.store.load_watch_list()
        region = self.store.load_region()
        webhook_url = self.store.load_webhook() or config.DISCORD_WEBHOOK_URL
        self.cycles += 1

        if not watch_list:
            logger.warning("Store ID list is empty; skipping this cycle")
            return []

        endpoint = config.build_endpoint(region)
        try:
            snapshot = self.fetch(endpoint, session=self.session)
        except FETCH_ERRORS as e:
            if self.stop_on_fetch_error:
                raise
            logger.error("Store directory fetch failed, skipping cycle: %s", e)
            return []

        events = check_availability(snapshot, watch_list)
        for event in events:
            self.on_event(event)

        delivered = dispatch_events(events, webhook_url, latch=self.latch)

        logger.info(
            "Checked at: %s (watched=%d found=%d available=%d notified=%d)",
            _dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            len(watch_list),
            len(events),
            sum(1 for e in events if e.available),
            delivered,
        )
        return events

    def _interval_seconds(self) -> int:
        seconds = int(self.store.load_interval().total_seconds())
        if seconds <= 0:
            logger.warning(
                "No check interval saved; waiting %d seconds before the next check",
                config.UNSET_INTERVAL_SECONDS,
            )
            return config.UNSET_INTERVAL_SECONDS
        return seconds

    def countdown(self, seconds: int) -> bool:
        """Wait ``seconds`` one tick at a time.  Returns False if stopped early."""
        for remaining in range(seconds, 0, -1):
            if self.on_tick is not None:
                self.on_tick(remaining)
            if self._stop.wait(self.tick_seconds):
                return False
        return True


__all__ = ["PollingScheduler", "log_event"]
