#!/usr/bin/env python3
"""Entry point for the detection trigger service."""

import argparse
import signal
import sys
import threading

from deepstack_trigger.config.defaults import DEFAULT_PATHS
from deepstack_trigger.exceptions import ConfigurationError
from deepstack_trigger.logging_config import get_logger, setup_logging
from deepstack_trigger.service import TriggerService
from deepstack_trigger.settings_manager import SettingsManager


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Watch folders for images and trigger notifications on detections.")
    parser.add_argument("--settings", action="append", dest="settings_files",
                        help="Settings file to load. May be repeated, the first readable file wins.")
    parser.add_argument("--triggers", action="append", dest="triggers_files",
                        help="Triggers file to load. May be repeated, the first readable file wins.")
    parser.add_argument("--storage-dir", default=DEFAULT_PATHS["local_storage_dir"],
                        help="Folder for originals, snapshots and annotated images.")
    parser.add_argument("--log-dir", default=DEFAULT_PATHS["logs_dir"],
                        help="Folder for rotating log files. Console only when omitted.")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the trigger service."""
    args = parse_args(argv)
    setup_logging(log_dir=args.log_dir)
    logger = get_logger("start_trigger")

    service = TriggerService(
        SettingsManager(args.settings_files, args.triggers_files),
        storage_root=args.storage_dir,
        log_dir=args.log_dir,
    )

    try:
        service.start()
    except ConfigurationError as e:
        logger.error(f"Unable to start the service: {e}")
        return 1

    stop_event = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: stop_event.set())

    # Keep the main thread running
    try:
        while not stop_event.is_set():
            stop_event.wait(1.0)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        service.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
