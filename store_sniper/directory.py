from __future__ import annotations

import datetime as _dt
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import requests

from . import config
from .utils import DecodeError, get_http_session, retryable_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkingStatus:
    status: str = ""
    message: str = ""


@dataclass(frozen=True)
class ScheduleEntry:
    day: str
    time: str


@dataclass(frozen=True)
class StoreService:
    id: str
    name: str


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    city: str
    address1: str
    product_availability: bool
    oms_id: str = ""
    url: str = ""
    country: str = ""
    country_code: str = ""
    postal: str = ""
    address2: str = ""
    address3: str = ""
    phone: str = ""
    working_status: WorkingStatus = field(default_factory=WorkingStatus)
    latitude: float = 0.0
    longitude: float = 0.0
    distance: float = 0.0
    schedule: Tuple[ScheduleEntry, ...] = ()
    schedule_for_json_ld: Tuple[str, ...] = ()
    store_services: Tuple[StoreService, ...] = ()
    exceptional: Optional[str] = None    # None means "no exceptional schedule"
    exceptional_opening_text: str = ""
    exceptional_closing_text: str = ""
    enable_click_collect: bool = False
    enable_delivery_to_store: bool = False

    @property
    def address(self) -> str:
        return self.address1

    @property
    def has_exceptional_schedule(self) -> bool:
        return self.exceptional is not None


@dataclass(frozen=True)
class StoreSnapshot:
    """One fetched copy of the store directory.  Replaced wholesale on refresh."""

    locations: Tuple[Location, ...]
    fetched_at: _dt.datetime
    success: bool = True
    radius: int = 0
    timestamp: str = ""
    fav_store_id: Optional[str] = None
    is_click_and_collect: bool = False

    def __len__(self) -> int:
        return len(self.locations)

    def __iter__(self) -> Iterator[Location]:
        return iter(self.locations)

    def find(self, store_id: str) -> Optional[Location]:
        """First location with ``store_id``; the upstream uniqueness is not trusted."""
        for loc in self.locations:
            if loc.id == store_id:
                return loc
        return None

    def cities(self) -> List[str]:
        """Distinct city names in the order they first appear."""
        seen: Dict[str, None] = {}
        for loc in self.locations:
            seen.setdefault(loc.city, None)
        return list(seen)


# ---------------------------
# Decoding helpers
# ---------------------------

def _str(obj: Dict[str, Any], key: str) -> str:
    v = obj.get(key)
    if v is None:
        return ""
    if not isinstance(v, str):
        raise DecodeError(f"Field {key!r} should be a string, got {type(v).__name__}")
    return v


def _optional_str(obj: Dict[str, Any], key: str) -> Optional[str]:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise DecodeError(f"Field {key!r} should be a string or null, got {type(v).__name__}")
    return v


def _bool(obj: Dict[str, Any], key: str) -> bool:
    v = obj.get(key)
    if v is None:
        return False
    if not isinstance(v, bool):
        raise DecodeError(f"Field {key!r} should be a boolean, got {type(v).__name__}")
    return v


def _number(obj: Dict[str, Any], key: str) -> float:
    v = obj.get(key)
    if v is None:
        return 0.0
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise DecodeError(f"Field {key!r} should be a number, got {type(v).__name__}")
    return float(v)


def _objects(obj: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    v = obj.get(key)
    if v is None:
        return []
    if not isinstance(v, list) or not all(isinstance(it, dict) for it in v):
        raise DecodeError(f"Field {key!r} should be a list of objects")
    return v


def _string_or_list(obj: Dict[str, Any], key: str) -> Tuple[str, ...]:
    """Decode a field the upstream sends either as one string or a list of strings."""
    v = obj.get(key)
    if v is None:
        return ()
    if isinstance(v, str):
        return (v,)
    if isinstance(v, list) and all(isinstance(s, str) for s in v):
        return tuple(v)
    raise DecodeError(f"Field {key!r} should be a string or a list of strings")


def parse_location(item: Dict[str, Any]) -> Location:
    if not isinstance(item, dict):
        raise DecodeError(f"Location entry should be an object, got {type(item).__name__}")

    ws = item.get("working_status")
    if ws is not None and not isinstance(ws, dict):
        raise DecodeError("Field 'working_status' should be an object")
    ws = ws or {}

    return Location(
        id=_str(item, "id"),
        oms_id=_str(item, "omsId"),
        name=_str(item, "name"),
        city=_str(item, "city"),
        url=_str(item, "url"),
        country=_str(item, "country"),
        country_code=_str(item, "country_code"),
        postal=_str(item, "postal"),
        address1=_str(item, "address1"),
        address2=_str(item, "address2"),
        address3=_str(item, "address3"),
        phone=_str(item, "phone"),
        working_status=WorkingStatus(status=_str(ws, "status"), message=_str(ws, "message")),
        latitude=_number(item, "latitude"),
        longitude=_number(item, "longitude"),
        distance=_number(item, "distance"),
        schedule=tuple(
            ScheduleEntry(day=_str(s, "Day"), time=_str(s, "Time"))
            for s in _objects(item, "schedule")
        ),
        schedule_for_json_ld=_string_or_list(item, "scheduleForJsonLD"),
        store_services=tuple(
            StoreService(id=_str(s, "id"), name=_str(s, "name"))
            for s in _objects(item, "store_services")
        ),
        exceptional=_optional_str(item, "exceptional"),
        exceptional_opening_text=_str(item, "exceptionalOpeningText"),
        exceptional_closing_text=_str(item, "exceptionalClosingText"),
        enable_click_collect=_bool(item, "enableClickCollect"),
        enable_delivery_to_store=_bool(item, "enableDeliveryToStore"),
        product_availability=_bool(item, "product_availability"),
    )


def parse_snapshot(payload: Any, fetched_at: Optional[_dt.datetime] = None) -> StoreSnapshot:
    """Build a StoreSnapshot from the decoded JSON body of the store locator."""
    if not isinstance(payload, dict):
        raise DecodeError(f"Expected a JSON object, got {type(payload).__name__}")

    raw_locations = payload.get("locations")
    if raw_locations is None:
        raw_locations = []
    if not isinstance(raw_locations, list):
        raise DecodeError("Field 'locations' should be a list")

    radius = _number(payload, "radius")

    return StoreSnapshot(
        locations=tuple(parse_location(it) for it in raw_locations),
        fetched_at=fetched_at or _dt.datetime.now(),
        success=_bool(payload, "success"),
        radius=int(radius),
        timestamp=_str(payload, "timestamp"),
        fav_store_id=_optional_str(payload, "favStoreId"),
        is_click_and_collect=_bool(payload, "isClickAndCollect"),
    )


# ---------------------------
# Fetching
# ---------------------------

@retryable_request
def _get(session: requests.Session, url: str, **kwargs: Any) -> requests.Response:
    """Thin wrapper around session.get; the retry policy and deadline come from utils.retryable_request."""
    return session.get(url, **kwargs)


def fetch_snapshot(
    endpoint: str,
    session: Optional[requests.Session] = None,
) -> StoreSnapshot:
    """Download and decode the store directory at ``endpoint``.

    Each attempt, body included, must finish within
    ``config.REQUEST_TIMEOUT_SECONDS``.  Raises TransportError,
    ProtocolError or DecodeError.
    """
    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    try:
        logger.debug("Fetching store directory from %s", endpoint)
        body = _get(
            session,
            endpoint,
            timeout=(config.CONNECT_TIMEOUT_SECONDS, config.REQUEST_TIMEOUT_SECONDS),
            verify=config.VERIFY_TLS,
        )
    finally:
        if close_session:
            session.close()

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise DecodeError(f"Store directory response is not valid JSON: {e}") from e

    snapshot = parse_snapshot(payload)
    logger.info("Fetched %d store locations", len(snapshot))
    return snapshot


__all__ = [
    "WorkingStatus",
    "ScheduleEntry",
    "StoreService",
    "Location",
    "StoreSnapshot",
    "parse_location",
    "parse_snapshot",
    "fetch_snapshot",
]
