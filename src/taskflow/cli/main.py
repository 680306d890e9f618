# src/taskflow/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the periodic trigger (re-expansion + daily summary) in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.task_scheduler import SchedulerBackgroundRunner, start_scheduler_in_background

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (owner=%s, log=%s)...", settings.app_name, settings.owner_id, log_file)

    state = create_initial_state(settings=settings)

    # Catch up on the rolling horizon before the first prompt.
    try:
        created = state.recurrence.expand_all()
        if created:
            logger.info("Startup expansion created %d occurrence(s)", created)
    except Exception:
        logger.exception("Startup expansion failed.")

    scheduler: SchedulerBackgroundRunner | None = start_scheduler_in_background(state)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the scheduler only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        if scheduler is not None:
            scheduler.stop()
            scheduler.join(timeout=10.0)
        state.task_store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
