"""Discord webhook notifier.

Sends a store availability notification to a Discord channel via webhook.
Delivery is a single attempt: a webhook that does not answer 204 No Content
is reported as a DeliveryError, logged, and the monitor carries on.
"""
from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

import requests

from . import config
from .checker import AvailabilityEvent, AvailabilityLatch
from .utils import DeliveryError, TransportError, read_body

logger = logging.getLogger(__name__)


def format_message(event: AvailabilityEvent) -> str:
    return (
        f"**🛍️ {config.NOTIFICATION_TITLE} 🏪** \n"
        f" 🛒 The Product is available in the store **{event.name}**! \n"
        f"Store Address: {event.address}"
    )


def send_availability_event(
    event: AvailabilityEvent,
    webhook_url: str,
    session: Optional[requests.Session] = None,
) -> None:
    """POST one notification for ``event``.  Raises DeliveryError unless the webhook answers 204.

    The whole exchange, response body included, must finish within
    ``config.WEBHOOK_TIMEOUT_SECONDS``.
    """
    close_session = False
    if session is None:
        session = requests.Session()
        close_session = True

    payload = {"content": format_message(event)}
    deadline = time.monotonic() + config.WEBHOOK_TIMEOUT_SECONDS
    try:
        resp = session.post(
            webhook_url,
            json=payload,
            timeout=(config.CONNECT_TIMEOUT_SECONDS, config.WEBHOOK_TIMEOUT_SECONDS),
            stream=True,
        )
        body = read_body(resp, deadline)
    except requests.RequestException as e:
        raise DeliveryError(f"Failed to send webhook request: {e}") from e
    except TransportError as e:
        raise DeliveryError(f"Webhook response failed: {e}") from e
    finally:
        if close_session:
            session.close()

    if resp.status_code != 204:
        text = body.decode("utf-8", errors="replace")
        raise DeliveryError(f"Received non-204 response status: {resp.status_code} {text[:200]}")
    logger.info("Sent availability notification for store %s (%s)", event.store_id, event.name)


def dispatch_events(
    events: Iterable[AvailabilityEvent],
    webhook_url: Optional[str],
    session: Optional[requests.Session] = None,
    latch: Optional[AvailabilityLatch] = None,
) -> int:
    """Notify for every available event; failures are logged and skipped.

    Returns the number of notifications the webhook accepted.
    """
    delivered = 0
    close_session = False
    try:
        for event in events:
            if not event.available:
                if latch is not None:
                    latch.should_notify(event)
                continue
            if not webhook_url:
                logger.debug("No webhook configured; not notifying store %s", event.store_id)
                continue
            if latch is not None and not latch.should_notify(event):
                logger.debug("Store %s already notified; skipping", event.store_id)
                continue
            if session is None:
                session = requests.Session()
                close_session = True
            try:
                send_availability_event(event, webhook_url, session=session)
                delivered += 1
            except DeliveryError as e:
                logger.warning("Could not notify store %s: %s", event.store_id, e)
    finally:
        if close_session and session is not None:
            session.close()
    return delivered


__all__ = ["format_message", "send_availability_event", "dispatch_events"]
