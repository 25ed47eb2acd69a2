# src/pluto_todo/cli/main.py

"""
CLI entrypoint.

Initializes logging, opens the database (schema + default categories), then
runs the console connector in the main thread, or idles until a signal when
the console is disabled and the command registry is driven from elsewhere.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    setup_logging(log_dir=settings.log_dir, console_level=settings.log_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            # Ctrl+C stays a KeyboardInterrupt so input() is interrupted.
            run_console_loop(state)
        else:
            try:
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            except (ValueError, OSError):
                # Not the main thread, or the platform lacks the signal.
                pass
            logger.info("Console disabled. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
