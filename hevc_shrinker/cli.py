"""
Command-Line Interface (CLI) setup for HEVC Shrinker.

This module uses Python's `argparse` to define the arguments of the two commands,
the run command (`main.py`) and the read-only ledger listing
(`list_processed_main.py`), and configures the loguru sinks both share.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .config.common import LOG_FILE_ROTATION, LOGGER_FORMAT

LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the run command.

    No argument is required: by default the current directory tree is processed
    and the ledger, holding directory and error log live in it.

    Returns:
        argparse.Namespace: An object containing the parsed command-line
                            arguments as attributes.
    """
    parser = argparse.ArgumentParser(
        description="Shrink a directory tree of videos to HEVC/AAC in MKV, keeping whichever file is smaller."
    )
    parser.add_argument(
        "--target-dir", type=str, default=None,
        help="Directory tree to process (default: current directory)."
    )
    parser.add_argument(
        "--db-file", type=str, default=None,
        help="Processed-files ledger (default: <target-dir>/processed_files.db)."
    )
    parser.add_argument(
        "--trash-dir", type=str, default=None,
        help="Holding directory for displaced originals (default: <target-dir>/.Trash)."
    )
    parser.add_argument(
        "--error-log", type=str, default=None,
        help="Append-only failure log (default: <target-dir>/error.log)."
    )
    parser.add_argument(
        "--crf", type=int, default=None,
        help="libx265 CRF (0-51, default 23)."
    )
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Per external command timeout in seconds. A timed-out file fails and the batch continues."
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Probe and classify every file, but do not encode, move, delete or record anything."
    )
    parser.add_argument(
        "--leave-original-on-remux-kept", action="store_true",
        help="When the remuxed original beats the new encode, leave the source file where it is "
             "instead of moving it to the holding directory."
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="User YAML config (default: ./config.user.yaml if present)."
    )
    _add_logging_args(parser)

    args = parser.parse_args(argv)

    if args.target_dir and not Path(args.target_dir).is_dir():
        parser.error(f"The target directory '{args.target_dir}' does not exist.")
    if args.timeout is not None and args.timeout <= 0:
        parser.error("--timeout must be a positive number of seconds.")

    return args


def get_list_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses command-line arguments for the ledger listing."""
    parser = argparse.ArgumentParser(
        description="List processed files, most recently processed first."
    )
    parser.add_argument(
        "--db-file", type=str, default="processed_files.db",
        help="Processed-files ledger (default: ./processed_files.db)."
    )
    parser.add_argument(
        "--details", action="store_true",
        help="Also print the fingerprint and the processing time."
    )
    parser.add_argument(
        "--limit", type=int, default=None,
        help="Print at most this many entries."
    )
    _add_logging_args(parser, default_level="WARNING")

    args = parser.parse_args(argv)
    if args.limit is not None and args.limit < 0:
        parser.error("--limit must not be negative.")
    return args


def _add_logging_args(parser: argparse.ArgumentParser, default_level: str = "INFO"):
    parser.add_argument(
        "--log-level", type=str, default=default_level, choices=LOG_LEVELS,
        help="Set the logging level."
    )
    parser.add_argument(
        "--log-file", type=str, default=None,
        help="Also write the log to this file (rotated at 10 MB)."
    )


def configure_logger(level: str = "INFO", log_file: Optional[str] = None):
    """Replaces loguru's default sink with ours; optionally adds a rotating file sink."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOGGER_FORMAT)
    if log_file:
        logger.add(
            log_file,
            level=level,
            format=LOGGER_FORMAT,
            rotation=LOG_FILE_ROTATION,
            colorize=False,
            encoding="utf-8",
        )
