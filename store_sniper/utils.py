"""Helper utilities.

This module centralises common helpers such as creating a configured HTTP
session, the retry policy applied to directory fetches and the exception
types shared by the rest of the package.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests
import urllib3
from requests import Response
from tenacity import (after_log, retry, retry_if_exception,
                      retry_if_exception_type, stop_after_attempt,
                      wait_exponential)

from . import config


logger = logging.getLogger(__name__)


class MonitorError(Exception):
    """Base class for every error raised by the monitor."""


class TransportError(MonitorError):
    """DNS, connection, TLS or timeout failure talking to a remote host."""


class ProtocolError(MonitorError):
    """The remote host answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(MonitorError):
    """Payload could not be decoded into the expected shape."""


class ConfigError(MonitorError):
    """A persisted state file exists but cannot be read."""


class EmptyWatchListError(ConfigError):
    """The monitor was asked to start with nothing to watch."""


class DeliveryError(MonitorError):
    """A webhook notification was not accepted."""


def get_http_session() -> requests.Session:
    """Return a new HTTP session with sensible defaults.

    The session sends a browser-like User-Agent and, because the store
    locator's certificate chain is not guaranteed to validate, skips TLS
    verification.  Caller is responsible for closing the session.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": config.USER_AGENT,
            "Accept": "application/json, text/javascript, */*; q=0.01",
        }
    )
    session.verify = config.VERIFY_TLS
    if not config.VERIFY_TLS:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    return session


def _is_server_error(exc: BaseException) -> bool:
    return isinstance(exc, ProtocolError) and (exc.status_code or 0) >= 500


def read_body(response: Response, deadline: float) -> bytes:
    """Read a streamed response body, giving up once ``deadline`` passes.

    ``deadline`` is a :func:`time.monotonic` value.  Raises
    :class:`TransportError` when it is reached or the connection fails
    mid-body.  The response is always closed.
    """
    body = bytearray()
    try:
        if time.monotonic() > deadline:
            raise TransportError(f"No response from {response.url} before the deadline")
        # One byte per read: a buffered read of n bytes blocks until all n arrive.
        for chunk in response.iter_content(chunk_size=1):
            body += chunk
            if time.monotonic() > deadline:
                raise TransportError(
                    f"Response from {response.url} still incomplete after the deadline "
                    f"({len(body)} bytes read)"
                )
    except requests.RequestException as e:
        raise TransportError(f"Reading response from {response.url} failed: {e}") from e
    finally:
        response.close()
    return bytes(body)


def retryable_request(method: Callable[..., Response]) -> Callable[..., bytes]:
    """Decorator applying the directory retry policy to an HTTP call.

    The decorated function must accept a `requests.Session` as its first
    argument, followed by URL and optional kwargs, and return a
    `requests.Response`.  It is called with ``stream=True`` and the wrapper
    returns the body bytes, read within ``config.REQUEST_TIMEOUT_SECONDS``
    of the attempt starting.  Network failures and overrun deadlines are
    turned into :class:`TransportError`, non-2xx statuses into
    :class:`ProtocolError`.  Transport errors and 5xx statuses are retried
    up to ``config.FETCH_ATTEMPTS`` attempts with exponential back-off
    between 1 and 10 seconds; the last error is re-raised.
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(config.FETCH_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=(
            retry_if_exception_type(TransportError)
            | retry_if_exception(_is_server_error)
        ),
        after=after_log(logger, logging.WARNING),
    )
    def wrapper(session: requests.Session, url: str, **kwargs: Any) -> bytes:
        deadline = time.monotonic() + config.REQUEST_TIMEOUT_SECONDS
        try:
            response = method(session, url, stream=True, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        if not 200 <= response.status_code < 300:
            response.close()
            raise ProtocolError(
                f"Server returned status {response.status_code}",
                status_code=response.status_code,
            )
        return read_body(response, deadline)

    return wrapper


__all__ = [
    "MonitorError",
    "TransportError",
    "ProtocolError",
    "DecodeError",
    "ConfigError",
    "EmptyWatchListError",
    "DeliveryError",
    "get_http_session",
    "read_body",
    "retryable_request",
]
