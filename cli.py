"""Command-line entry point: json-server-setup <dbFile> <port> [options]"""
import argparse
import logging
import sys
from typing import List, Optional

from app import create_json_server
from config import VERSION, SystemConfig, config
from errors import StartupError

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

EPILOG = "For more information, visit https://github.com/wathika-eng/json-server-setup"

EXAMPLES = """examples:
  %(prog)s db.json 5000
      Start JSON Server on port 5000 using db.json
  %(prog)s db.json 5000 --cors-origin "http://localhost:3000"
      Allow CORS requests from http://localhost:3000
"""


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535, got {port}")
    return port


def _milliseconds(value: str) -> int:
    try:
        ms = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")
    if ms < 0:
        raise argparse.ArgumentTypeError("duration cannot be negative")
    return ms


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='json-server-setup',
        usage='%(prog)s <dbFile> <port> [options]',
        description='Start the JSON Server with the given configuration',
        epilog=EXAMPLES + "\n" + EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        'db_file',
        nargs='?',
        default=config.DB_FILE,
        metavar='dbFile',
        help='Path to the JSON database file (default: %(default)s)',
    )
    parser.add_argument(
        'port',
        nargs='?',
        type=_port,
        default=config.PORT,
        help='Port number to run the server on (default: %(default)s)',
    )
    parser.add_argument(
        '--cors-origin',
        default=config.CORS_ORIGIN,
        help='CORS origin(s) to allow (default: %(default)s)',
    )
    parser.add_argument(
        '--cors-methods',
        default=config.CORS_METHODS,
        help='Comma-separated list of allowed HTTP methods (default: %(default)s)',
    )
    parser.add_argument(
        '--cors-headers',
        default=config.CORS_HEADERS,
        help='Comma-separated list of allowed HTTP headers (default: %(default)s)',
    )
    parser.add_argument(
        '--host',
        default=config.HOST,
        help='Interface to bind (default: %(default)s)',
    )
    parser.add_argument(
        '--debounce-ms',
        type=_milliseconds,
        default=int(config.DEBOUNCE_SECONDS * 1000),
        help='Coalesce file changes arriving within this window; 0 reloads on every event (default: %(default)s)',
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        type=str.upper,
        choices=LOG_LEVELS,
        help='Logging level (default: %(default)s)',
    )
    parser.add_argument('-v', '--version', action='version', version=VERSION)
    return parser


def config_from_args(args: argparse.Namespace) -> SystemConfig:
    return SystemConfig(
        DB_FILE=args.db_file,
        HOST=args.host,
        PORT=args.port,
        CORS_ORIGIN=args.cors_origin,
        CORS_METHODS=args.cors_methods,
        CORS_HEADERS=args.cors_headers,
        DEBOUNCE_SECONDS=args.debounce_ms / 1000.0,
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    try:
        create_json_server(config_from_args(args))
    except StartupError as exc:
        logging.error("%s", exc)
        raise SystemExit(2) from exc
    except OSError as exc:
        logging.error("Cannot start server on %s:%s: %s", args.host, args.port, exc)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        logging.info("Server interrupted by user")


if __name__ == '__main__':
    main(sys.argv[1:])
