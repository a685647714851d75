#!/usr/bin/env python3
"""streamlog entry point: timestamp stdin into rotating log files."""

import logging
import sys

from streamlog.config import build_cli_parser, load_config, load_yaml_config
from streamlog.controller import RotationController
from streamlog.errors import ConfigError, StreamlogError
from streamlog.intents import PendingIntents, SignalBridge
from streamlog.paths import ensure_dir, resolve_log_dir

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [streamlog] %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def main(argv=None, stdin=None) -> int:
    parser = build_cli_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    stream = stdin if stdin is not None else sys.stdin.buffer

    try:
        yaml_data = load_yaml_config(args.config)
        config = load_config(args, yaml_data)
        log_dir = ensure_dir(resolve_log_dir(config))
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG

    logger.info(
        "Config: dir=%s, buffer=%d bytes, size=%d bytes, age=%ds, count=%d, time=%s, naming=%s",
        log_dir, config.buffer_size, config.log_size, config.log_age,
        config.log_count, config.time_format.value, config.naming.value,
    )

    intents = PendingIntents()
    try:
        with SignalBridge(intents, config.log_age) as bridge:
            controller = RotationController(
                config, log_dir, stream, intents, interrupt_fd=bridge.wakeup_fd
            )
            controller.start()
            controller.run()
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG
    except StreamlogError as e:
        logger.error("fatal: %s", e)
        return EXIT_FATAL

    logger.info("Shut down cleanly after %d rotation(s)", controller.rotations)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
