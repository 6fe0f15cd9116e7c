"""Configuration loader.

Reads environment variables and `.env` to configure the service.  Values that
the operator changes while the monitor is running (watch list, interval,
region, webhook) are not here: they live in flat files handled by
:mod:`store_sniper.state`.
"""

from __future__ import annotations

import os
from typing import Optional
from pathlib import Path
from urllib.parse import urlencode

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


# ---- Storage & logging -------------------------------------------------------

# Directory holding the flat state files (store_ids, check_intervaltimer.txt, ...).
DATA_DIR: Path = Path(_get_env("DATA_DIR", ".") or ".")

LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO") or "INFO"

# ---- Store locator endpoint --------------------------------------------------

PRODUCT_ID: str = _get_env("PRODUCT_ID", "735577") or "735577"

# Origin point of the store search.  The radius is large enough to cover the
# whole country from there.
SEARCH_LATITUDE: float = _parse_float(_get_env("SEARCH_LATITUDE"), 38.2088210000000)
SEARCH_LONGITUDE: float = _parse_float(_get_env("SEARCH_LONGITUDE"), 15.5470420606796)

# Optional override; when unset each region uses its own radius below.
SEARCH_RADIUS: Optional[int] = (
    _parse_int(_get_env("SEARCH_RADIUS"), 0) or None
)

# region code -> (store locator URL, default searchedRadius)
REGIONS: dict[str, tuple[str, int]] = {
    "IT": (
        "https://www.sephora.it/on/demandware.store/Sites-Sephora_IT-Site/it_IT/Stores-FindNearestStores",
        15000,
    ),
    "DE": (
        "https://www.sephora.de/on/demandware.store/Sites-Sephora_DE-Site/de_DE/Stores-FindNearestStores",
        150000,
    ),
    "FR": (
        "https://www.sephora.fr/on/demandware.store/Sites-Sephora_FR-Site/fr_FR/Stores-FindNearestStores",
        150000,
    ),
}

DEFAULT_REGION: str = (_get_env("DEFAULT_REGION", "FR") or "FR").strip().upper()

# ---- HTTP --------------------------------------------------------------------

# Fixed on purpose: not tunable from the environment.
CONNECT_TIMEOUT_SECONDS: float = 10.0
REQUEST_TIMEOUT_SECONDS: float = 15.0
WEBHOOK_TIMEOUT_SECONDS: float = 15.0

# The store locator's certificate chain does not always validate.
VERIFY_TLS: bool = False

USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/92.0.4515.131 Safari/537.36"
)

# Attempts per directory fetch (transport errors and 5xx only).
FETCH_ATTEMPTS: int = max(1, _parse_int(_get_env("FETCH_ATTEMPTS", "3"), 3))

# ---- Monitoring loop ---------------------------------------------------------

# When true a failed directory fetch stops the monitor; when false the cycle
# is skipped and retried after the normal interval.
FETCH_ERRORS_FATAL: bool = _parse_bool(_get_env("FETCH_ERRORS_FATAL", "true"), True)

# Notify only once per availability streak instead of on every cycle.
NOTIFY_ONCE: bool = _parse_bool(_get_env("NOTIFY_ONCE", "false"), False)

# Wait used between cycles while no interval has been saved yet.
UNSET_INTERVAL_SECONDS: int = max(1, _parse_int(_get_env("UNSET_INTERVAL_SECONDS", "60"), 60))

# ---- Notifications -----------------------------------------------------------

# Used when no webhook URL has been saved with `store-sniper set-webhook`.
DISCORD_WEBHOOK_URL: Optional[str] = _get_env("DISCORD_WEBHOOK_URL") or None

NOTIFICATION_TITLE: str = _get_env("NOTIFICATION_TITLE", "SEPHORA SNIPER") or "SEPHORA SNIPER"


def build_endpoint(region: Optional[str] = None) -> str:
    """Return the full store locator URL for ``region`` (default region if None)."""
    code = (region or DEFAULT_REGION).strip().upper()
    if code not in REGIONS:
        raise ValueError(f"Unknown region {region!r}; expected one of {', '.join(REGIONS)}")
    base_url, radius = REGIONS[code]
    params = {
        "pid": PRODUCT_ID,
        "clickcollect": "true",
        "pdpstock": "true",
        "latitude": f"{SEARCH_LATITUDE:.13f}",
        "longitude": f"{SEARCH_LONGITUDE:.13f}",
        "searchedRadius": str(SEARCH_RADIUS or radius),
        "storeservices": "",
    }
    return f"{base_url}?{urlencode(params)}"


# ---- Validation --------------------------------------------------------------

def validate() -> None:
    """Validate configuration parameters."""
    if DEFAULT_REGION not in REGIONS:
        raise RuntimeError(
            f"DEFAULT_REGION must be one of {', '.join(REGIONS)} (got {DEFAULT_REGION!r})."
        )
    if not PRODUCT_ID.strip():
        raise RuntimeError("PRODUCT_ID must not be empty.")


__all__ = [
    # Storage
    "DATA_DIR",
    "LOG_LEVEL",
    # Endpoint
    "PRODUCT_ID",
    "SEARCH_LATITUDE",
    "SEARCH_LONGITUDE",
    "SEARCH_RADIUS",
    "REGIONS",
    "DEFAULT_REGION",
    # HTTP
    "CONNECT_TIMEOUT_SECONDS",
    "REQUEST_TIMEOUT_SECONDS",
    "WEBHOOK_TIMEOUT_SECONDS",
    "VERIFY_TLS",
    "USER_AGENT",
    "FETCH_ATTEMPTS",
    # Loop
    "FETCH_ERRORS_FATAL",
    "NOTIFY_ONCE",
    "UNSET_INTERVAL_SECONDS",
    # Notifications
    "DISCORD_WEBHOOK_URL",
    "NOTIFICATION_TITLE",
    # Helpers
    "build_endpoint",
    "validate",
]
