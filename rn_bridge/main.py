"""
Command-line entry point.

    rn-bridge scan [--start-port P] [--end-port P]
    rn-bridge eval EXPRESSION [--no-await]
    rn-bridge tail [--seconds N]

Every command prints JSON to stdout; logging goes to stderr (and optionally
a rotating file).
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from rn_bridge.bridge import DebugBridge
from rn_bridge.config import load_settings, BridgeSettings
from rn_bridge.models import LogRecord
from rn_bridge.observability import setup_tracing

logger = logging.getLogger(__name__)

TAIL_POLL_INTERVAL = 0.25


def configure_logging(log_level: str = "INFO", log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                      log_to_file: bool = False, log_file_path: str = "logs/rn_bridge.log",
                      max_lines_per_file: int = 5000, max_log_files: int = 10):
    """
    Configure logging with the specified level, format, and optional rolling file logging.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log message format string
        log_to_file: Whether to enable file logging
        log_file_path: Path to log file (directory will be created if needed)
        max_lines_per_file: Maximum lines per log file before rotation
        max_log_files: Maximum number of log files to keep
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        logging.basicConfig(level=logging.INFO, format=log_format, stream=sys.stderr, force=True)
        logger.error(f"Invalid log level: {log_level}. Using INFO instead.")
        return

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    # stdout is reserved for JSON output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        try:
            import os
            from logging.handlers import RotatingFileHandler

            log_dir = os.path.dirname(log_file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)

            # Estimate ~100 characters per log line on average
            max_bytes = max_lines_per_file * 100
            file_handler = RotatingFileHandler(
                filename=log_file_path,
                maxBytes=max_bytes,
                backupCount=max(max_log_files - 1, 0),  # current file + backups = total
                encoding='utf-8'
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as file_error:
            logger.warning(f"Failed to set up file logging at {log_file_path}: {file_error}")

    root_logger.setLevel(numeric_level)
    logger.debug(f"Logging configured: level={log_level.upper()}, file={'on' if log_to_file else 'off'}")


def _print_json(data: Any) -> None:
    print(json.dumps(data, default=str), flush=True)


def _new_records(records: List[LogRecord], last_seen: Optional[LogRecord]) -> List[LogRecord]:
    """Records appended after last_seen (all of them if it was evicted or never set)."""
    if last_seen is None:
        return records
    for i in range(len(records) - 1, -1, -1):
        if records[i] is last_seen:
            return records[i + 1:]
    return records


# --- Commands ---

async def run_scan(bridge: DebugBridge, args: argparse.Namespace) -> int:
    endpoints = await bridge.context.scanner.scan(args.start_port, args.end_port)
    _print_json({str(port): [d.to_dict() for d in descriptors] for port, descriptors in endpoints.items()})
    return 0


async def run_eval(bridge: DebugBridge, args: argparse.Namespace) -> int:
    results = await bridge.discover_and_connect(args.start_port, args.end_port)
    if not any(result.attached for result in results):
        _print_json({"success": False, "error": "No app instance could be attached",
                     "ports": [result.to_dict() for result in results]})
        return 1
    outcome = await bridge.evaluate(args.expression, await_promise=not args.no_await)
    _print_json(outcome.to_dict())
    return 0 if outcome.success else 1


async def run_tail(bridge: DebugBridge, args: argparse.Namespace) -> int:
    results = await bridge.discover_and_connect(args.start_port, args.end_port)
    if not any(result.attached for result in results):
        _print_json({"success": False, "error": "No app instance could be attached"})
        return 1

    loop = asyncio.get_running_loop()
    deadline = loop.time() + args.seconds
    last_seen: Optional[LogRecord] = None
    while True:
        fresh = _new_records(bridge.context.log_buffer.all(), last_seen)
        for record in fresh:
            _print_json(record.to_dict())
        if fresh:
            last_seen = fresh[-1]
        if loop.time() >= deadline or not bridge.context.registry.first_connected():
            break
        await asyncio.sleep(TAIL_POLL_INTERVAL)
    return 0


COMMANDS = {
    "scan": run_scan,
    "eval": run_eval,
    "tail": run_tail,
}


def build_parser(settings: BridgeSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rn-bridge", description="React Native debugging bridge over CDP")
    parser.add_argument("--start-port", type=int, default=settings.scan_start_port, help="First port to scan")
    parser.add_argument("--end-port", type=int, default=settings.scan_end_port, help="Last port to scan")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("scan", help="Discover bundler endpoints and their app instances")

    eval_parser = subparsers.add_parser("eval", help="Evaluate an expression in the main app instance")
    eval_parser.add_argument("expression", help="JavaScript expression")
    eval_parser.add_argument("--no-await", action="store_true", help="Do not wait for a returned promise")

    tail_parser = subparsers.add_parser("tail", help="Stream captured console logs as JSON lines")
    tail_parser.add_argument("--seconds", type=float, default=10.0, help="How long to stream")
    return parser


async def amain(argv: Optional[List[str]] = None) -> int:
    """Asynchronous main entry point."""
    settings = load_settings()
    configure_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_to_file=settings.log_to_file,
        log_file_path=settings.log_file_path,
        max_lines_per_file=settings.log_max_lines_per_file,
        max_log_files=settings.log_max_files
    )
    if settings.tracing_enabled:
        setup_tracing()

    args = build_parser(settings).parse_args(argv)
    async with DebugBridge(settings=settings) as bridge:
        return await COMMANDS[args.command](bridge, args)


def main():
    try:
        sys.exit(asyncio.run(amain()))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        sys.exit(130)


if __name__ == "__main__":
    main()
