#!/usr/bin/env python3
"""
Standalone telemetry server: accepts simulation connections and logs every sample.

    telemetry-server [port] [--host HOST] [--log-level LEVEL]
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from core.config_loader import config_loader
from core.exceptions import AcceptError, BindError
from core.services.sinks import LoggingSink
from core.services.telemetry_listener import run_server

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Receive newline-delimited vehicle telemetry over TCP.")
    parser.add_argument(
        "port",
        nargs="?",
        type=int,
        default=config_loader.get_port(),
        help=f"TCP port to listen on (default: {config_loader.get_port()}).",
    )
    parser.add_argument("--host", default=config_loader.get_host(), help="Address to bind.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Root log level.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    try:
        asyncio.run(run_server(
            LoggingSink(),
            host=args.host,
            port=args.port,
            read_limit=config_loader.get_read_limit(),
        ))
    except BindError as e:
        logger.error(str(e))
        return 1
    except AcceptError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
