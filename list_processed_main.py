"""
Prints the processed-files ledger, most recently processed first.

Read-only: the database is opened with SQLite's `mode=ro`, so running this never
creates or modifies the store.
"""

import sqlite3
import sys
from pathlib import Path

from loguru import logger

from hevc_shrinker.cli import configure_logger, get_list_args
from hevc_shrinker.services.ledger_service import ProcessedFileLedger
from hevc_shrinker.utils.format_utils import format_epoch


def main(argv=None) -> int:
    args = get_list_args(argv)
    configure_logger(args.log_level, args.log_file)

    db_path = Path(args.db_file)
    if not db_path.is_file():
        logger.error(f"Ledger not found: {db_path.resolve()}")
        return 1

    try:
        entries = ProcessedFileLedger(db_path, read_only=True).list_entries(args.limit)
    except sqlite3.Error as e:
        logger.error(f"Could not read ledger {db_path.resolve()}: {e}")
        return 1

    for entry in entries:
        if args.details:
            print(f"{format_epoch(entry.processed_at)}\t{entry.filehash}\t{entry.filepath}")
        else:
            print(entry.filepath)
    logger.info(f"{len(entries)} entr{'y' if len(entries) == 1 else 'ies'} listed from {db_path.resolve()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
