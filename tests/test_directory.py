from __future__ import annotations

import time

import pytest
from tenacity import stop_after_attempt, wait_none

from payloads import (
    FakeResponse,
    FakeSession,
    connection_error,
    directory_payload,
    drip_server,
    local_session,
    location_payload,
)
from store_sniper import config, directory
from store_sniper.directory import fetch_snapshot, parse_snapshot
from store_sniper.utils import DecodeError, ProtocolError, TransportError

ENDPOINT = "https://store-locator.invalid/Stores-FindNearestStores?pid=735577"


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(directory._get.retry, "wait", wait_none())


def test_parse_snapshot_reads_envelope_and_locations() -> None:
    snap = parse_snapshot(
        directory_payload(
            location_payload("IT001", available=True, name="Sephora Duomo", address="Piazza Duomo 1"),
            location_payload("IT002", city="ROMA"),
        )
    )

    assert snap.success is True
    assert snap.radius == 15000
    assert snap.timestamp == "2024-11-02T10:00:00Z"
    assert snap.fav_store_id is None
    assert len(snap) == 2

    first = snap.locations[0]
    assert first.id == "IT001"
    assert first.name == "Sephora Duomo"
    assert first.address == "Piazza Duomo 1"
    assert first.city == "MILANO"
    assert first.product_availability is True
    assert first.working_status.status == "open"
    assert first.schedule[0].day == "Lunedì"
    assert first.store_services[0].name == "Click & Collect"
    assert snap.locations[1].product_availability is False


def test_schedule_for_json_ld_accepts_string_or_list() -> None:
    snap = parse_snapshot(
        directory_payload(
            location_payload("A", scheduleForJsonLD="Mo-Sa 10:00-20:00"),
            location_payload("B", scheduleForJsonLD=["Mo 10:00-20:00", "Tu 10:00-20:00"]),
            location_payload("C", scheduleForJsonLD=None),
        )
    )
    assert snap.find("A").schedule_for_json_ld == ("Mo-Sa 10:00-20:00",)
    assert snap.find("B").schedule_for_json_ld == ("Mo 10:00-20:00", "Tu 10:00-20:00")
    assert snap.find("C").schedule_for_json_ld == ()


@pytest.mark.parametrize("value", [42, {"Mo": "10:00"}, ["Mo", 3]])
def test_schedule_for_json_ld_rejects_other_shapes(value: object) -> None:
    with pytest.raises(DecodeError):
        parse_snapshot(directory_payload(location_payload("A", scheduleForJsonLD=value)))


def test_exceptional_null_is_distinct_from_empty() -> None:
    payload = directory_payload(
        location_payload("NULL", exceptional=None),
        location_payload("EMPTY", exceptional=""),
        location_payload("SET", exceptional="Chiuso il 25/12"),
    )
    del payload["locations"][0]["exceptional"]
    payload["locations"].append(location_payload("EXPLICIT_NULL", exceptional=None))
    snap = parse_snapshot(payload)

    assert snap.find("NULL").exceptional is None
    assert snap.find("EXPLICIT_NULL").exceptional is None
    assert not snap.find("EXPLICIT_NULL").has_exceptional_schedule
    assert snap.find("EMPTY").exceptional == ""
    assert snap.find("SET").has_exceptional_schedule


@pytest.mark.parametrize(
    "payload",
    [
        [],
        "not an object",
        {"locations": {"id": "IT001"}},
        {"locations": ["IT001"]},
        {"locations": [{"id": 12}]},
        {"locations": [{"id": "IT001", "product_availability": "true"}]},
        {"locations": [{"id": "IT001", "latitude": "45.4"}]},
    ],
)
def test_parse_snapshot_rejects_wrong_shapes(payload: object) -> None:
    with pytest.raises(DecodeError):
        parse_snapshot(payload)


def test_missing_fields_decode_to_zero_values() -> None:
    snap = parse_snapshot({"locations": [{"id": "IT001"}]})
    loc = snap.find("IT001")
    assert loc.name == ""
    assert loc.product_availability is False
    assert snap.success is False

    assert len(parse_snapshot({})) == 0


def test_find_returns_first_duplicate_and_cities_keep_first_seen_order() -> None:
    snap = parse_snapshot(
        directory_payload(
            location_payload("IT001", city="TORINO", name="first"),
            location_payload("IT002", city="MILANO"),
            location_payload("IT001", city="TORINO", name="second"),
            location_payload("IT003", city="ROMA"),
        )
    )
    assert snap.find("IT001").name == "first"
    assert snap.find("missing") is None
    assert snap.cities() == ["TORINO", "MILANO", "ROMA"]


def test_fetch_snapshot_uses_timeouts_and_relaxed_tls() -> None:
    session = FakeSession(FakeResponse(200, directory_payload(location_payload("IT001"))))
    snap = fetch_snapshot(ENDPOINT, session=session)

    assert snap.find("IT001") is not None
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert url == ENDPOINT
    assert kwargs["timeout"] == (config.CONNECT_TIMEOUT_SECONDS, config.REQUEST_TIMEOUT_SECONDS)
    assert kwargs["verify"] is False
    assert kwargs["stream"] is True
    assert not session.closed


def test_fetch_snapshot_client_error_is_not_retried() -> None:
    session = FakeSession(FakeResponse(404))
    with pytest.raises(ProtocolError) as excinfo:
        fetch_snapshot(ENDPOINT, session=session)
    assert excinfo.value.status_code == 404
    assert len(session.calls) == 1


def test_fetch_snapshot_retries_server_errors() -> None:
    session = FakeSession(FakeResponse(503))
    with pytest.raises(ProtocolError):
        fetch_snapshot(ENDPOINT, session=session)
    assert len(session.calls) == config.FETCH_ATTEMPTS


def test_fetch_snapshot_recovers_after_transient_failure() -> None:
    if config.FETCH_ATTEMPTS < 2:
        pytest.skip("retries disabled")
    session = FakeSession(
        connection_error(),
        FakeResponse(200, directory_payload(location_payload("IT001"))),
    )
    snap = fetch_snapshot(ENDPOINT, session=session)
    assert snap.find("IT001") is not None
    assert len(session.calls) == 2


def test_fetch_snapshot_transport_error() -> None:
    session = FakeSession(connection_error())
    with pytest.raises(TransportError):
        fetch_snapshot(ENDPOINT, session=session)
    assert len(session.calls) == config.FETCH_ATTEMPTS


def test_fetch_snapshot_invalid_json_is_decode_error() -> None:
    session = FakeSession(FakeResponse(200, body=b"<html>maintenance</html>"))
    with pytest.raises(DecodeError):
        fetch_snapshot(ENDPOINT, session=session)
    assert len(session.calls) == 1


def test_build_endpoint_query() -> None:
    url = config.build_endpoint("it")
    assert url.startswith(config.REGIONS["IT"][0] + "?")
    assert f"pid={config.PRODUCT_ID}" in url
    assert "clickcollect=true" in url
    assert "pdpstock=true" in url
    assert "searchedRadius=" in url
    assert "storeservices=" in url

    with pytest.raises(ValueError):
        config.build_endpoint("ES")


def test_fetch_snapshot_gives_up_on_a_trickling_body(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "REQUEST_TIMEOUT_SECONDS", 0.5)
    monkeypatch.setattr(directory._get.retry, "stop", stop_after_attempt(1))

    with drip_server() as url:
        session = local_session()
        started = time.monotonic()
        with pytest.raises(TransportError, match="deadline"):
            fetch_snapshot(url, session=session)
        elapsed = time.monotonic() - started
        session.close()

    assert elapsed < 3


def test_fetch_snapshot_retries_after_deadline(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "REQUEST_TIMEOUT_SECONDS", -1.0)
    session = FakeSession(FakeResponse(200, directory_payload(location_payload("IT001"))))

    with pytest.raises(TransportError):
        fetch_snapshot(ENDPOINT, session=session)
    assert len(session.calls) == config.FETCH_ATTEMPTS
