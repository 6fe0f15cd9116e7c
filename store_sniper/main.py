from __future__ import annotations

import logging
import signal
import sys
from typing import Callable, Optional

from . import config
from .directory import fetch_snapshot
from .scheduler import FETCH_ERRORS, PollingScheduler
from .state import FileStateStore
from .utils import ConfigError, EmptyWatchListError


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _print_tick(remaining: int) -> None:
    sys.stdout.write(
        f"\rLeave this terminal open, next check will be in {remaining} seconds "
    )
    sys.stdout.flush()


def run_monitor(
    store: Optional[FileStateStore] = None,
    on_tick: Optional[Callable[[int], None]] = _print_tick,
) -> int:
    """Build the scheduler, wire shutdown signals and run it.  Returns an exit status."""
    logger = logging.getLogger(__name__)
    store = store or FileStateStore()

    scheduler = PollingScheduler(store, fetch=fetch_snapshot, on_tick=on_tick)

    def _shutdown(signum, frame) -> None:
        logger.info("Received signal %s; stopping after the current step", signum)
        scheduler.stop()

    previous = {sig: signal.signal(sig, _shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}

    try:
        watch_list = store.load_watch_list()
        logger.info(
            "Monitoring %d stores in region %s (interval=%s, webhook=%s)",
            len(watch_list),
            store.load_region() or config.DEFAULT_REGION,
            store.load_interval(),
            "set" if (store.load_webhook() or config.DISCORD_WEBHOOK_URL) else "not set",
        )
        scheduler.run()
    except EmptyWatchListError as e:
        logger.error("Error: %s", e)
        return 1
    except ConfigError as e:
        logger.error("Cannot read saved settings: %s", e)
        return 1
    except FETCH_ERRORS as e:
        logger.error("Store directory fetch failed: %s", e)
        return 1
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return 0


def main() -> None:
    """Initialise and run the monitoring loop."""
    setup_logging()
    try:
        config.validate()
    except RuntimeError as e:
        logging.getLogger(__name__).error("Invalid configuration: %s", e)
        sys.exit(1)
    sys.exit(run_monitor())


if __name__ == "__main__":
    main()
