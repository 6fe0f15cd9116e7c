"""Flat-file persistence for the operator's monitor settings.

Each setting lives in its own file under ``config.DATA_DIR``:

- ``store_ids``               : newline separated store identifiers (append only)
- ``check_intervaltimer.txt`` : poll interval as a whole number of hours
- ``country_selection.txt``   : region code (IT, DE, FR)
- ``webhook_url.txt``         : raw webhook URL

A missing file is never an error; loaders return the empty default instead.
A file that exists but cannot be read raises :class:`ConfigError`.
"""

from __future__ import annotations

import datetime as _dt
import logging
import os
from pathlib import Path
from typing import List, Optional

from . import config
from .utils import ConfigError

logger = logging.getLogger(__name__)

WATCH_LIST_FILENAME = "store_ids"
INTERVAL_FILENAME = "check_intervaltimer.txt"
REGION_FILENAME = "country_selection.txt"
WEBHOOK_FILENAME = "webhook_url.txt"


class FileStateStore:
    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else config.DATA_DIR

    # -------- low level --------

    def _path(self, name: str) -> Path:
        return self.base_dir / name

    def _read(self, name: str) -> Optional[str]:
        path = self._path(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

    def _replace(self, name: str, text: str) -> None:
        """Overwrite a whole-value file durably (temp file + fsync + replace)."""
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(path)

    # -------- watch list --------

    def load_watch_list(self) -> List[str]:
        raw = self._read(WATCH_LIST_FILENAME)
        if raw is None:
            return []
        return [line.strip() for line in raw.splitlines() if line.strip()]

    def append_to_watch_list(self, store_id: str) -> None:
        store_id = store_id.strip()
        if not store_id or "\n" in store_id or "\r" in store_id:
            raise ValueError(f"Invalid store id: {store_id!r}")
        path = self._path(WATCH_LIST_FILENAME)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(store_id + "\n")
            f.flush()
            os.fsync(f.fileno())
        logger.debug("Added store %s to %s", store_id, path)

    # -------- interval --------

    def load_interval(self) -> _dt.timedelta:
        raw = self._read(INTERVAL_FILENAME)
        if raw is None:
            return _dt.timedelta(0)
        try:
            hours = int(raw.strip())
        except ValueError as e:
            raise ConfigError(
                f"{self._path(INTERVAL_FILENAME)} does not hold a whole number of hours: {raw!r}"
            ) from e
        if hours < 0:
            raise ConfigError(f"{self._path(INTERVAL_FILENAME)} holds a negative interval: {hours}")
        return _dt.timedelta(hours=hours)

    def save_interval(self, interval: _dt.timedelta) -> None:
        if interval < _dt.timedelta(0):
            raise ValueError("Interval must not be negative")
        hours = int(interval.total_seconds() // 3600)
        self._replace(INTERVAL_FILENAME, str(hours))

    # -------- region --------

    def load_region(self) -> Optional[str]:
        raw = self._read(REGION_FILENAME)
        if raw is None:
            return None
        code = raw.strip().upper()
        if not code:
            return None
        if code not in config.REGIONS:
            raise ConfigError(
                f"{self._path(REGION_FILENAME)} holds unknown region {code!r}; "
                f"expected one of {', '.join(config.REGIONS)}"
            )
        return code

    def save_region(self, code: str) -> None:
        code = code.strip().upper()
        if code not in config.REGIONS:
            raise ValueError(f"Unknown region {code!r}; expected one of {', '.join(config.REGIONS)}")
        self._replace(REGION_FILENAME, code)

    # -------- webhook --------

    def load_webhook(self) -> Optional[str]:
        raw = self._read(WEBHOOK_FILENAME)
        if raw is None:
            return None
        return raw.strip() or None

    def save_webhook(self, url: str) -> None:
        self._replace(WEBHOOK_FILENAME, url.strip())


__all__ = ["FileStateStore"]
