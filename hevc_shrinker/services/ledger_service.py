"""
The processed-files ledger.

A single SQLite table records every file whose processing committed:

    processed_files(filepath TEXT PRIMARY KEY, filehash TEXT, processed_at INTEGER)

`filepath` is the absolute path of the *final* file, `filehash` the fingerprint of
its bytes, `processed_at` Unix epoch seconds. Every operation opens its own short
connection and commits or rolls back as a unit, so a crash never leaves a
half-written row behind.
"""
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, List, Optional

from loguru import logger

from ..domain.exceptions import LedgerWriteFailure, StartupException

_SCHEMA = """
CREATE TABLE IF NOT EXISTS processed_files (
    filepath TEXT PRIMARY KEY,
    filehash TEXT NOT NULL,
    processed_at INTEGER NOT NULL
);
"""
# Never a valid absolute path, so it cannot collide with a real entry.
_PROBE_KEY = "<writability-check>"


@dataclass(frozen=True)
class LedgerEntry:
    """One row of the ledger."""

    filepath: str
    filehash: str
    processed_at: int


class ProcessedFileLedger:
    """SQLite-backed record of finalized files."""

    def __init__(self, db_path: Path, read_only: bool = False):
        """
        Raises:
            StartupException: If a writable store cannot be created or opened.
        """
        self.db_path = Path(db_path).resolve()
        self.read_only = read_only
        if not read_only:
            try:
                self._init_db()
            except (sqlite3.Error, OSError) as e:
                raise StartupException(f"Cannot open ledger store {self.db_path}: {e}") from e

    def _init_db(self) -> None:
        """Creates the database file and the table if they do not exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """A connection that commits on success and rolls back on any error."""
        if self.read_only:
            conn = sqlite3.connect(f"{self.db_path.as_uri()}?mode=ro", uri=True)
        else:
            conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_writable(self) -> None:
        """
        Proves the store accepts writes before any file is touched.

        Raises:
            StartupException: If the database cannot be created, opened or written.
        """
        if self.read_only:
            raise StartupException(f"Ledger {self.db_path} was opened read-only.")
        try:
            self._init_db()
            with self._get_connection() as conn:
                # A write that leaves no trace: the row never outlives the transaction.
                conn.execute(
                    "INSERT OR REPLACE INTO processed_files VALUES (?, ?, ?)",
                    (_PROBE_KEY, "", 0),
                )
                conn.execute("DELETE FROM processed_files WHERE filepath = ?", (_PROBE_KEY,))
        except (sqlite3.Error, OSError) as e:
            raise StartupException(f"Ledger store {self.db_path} is not writable: {e}") from e
        logger.debug(f"Ledger store {self.db_path} is writable.")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def lookup(self, filepath: Path | str) -> bool:
        """True iff an entry exists for exactly this absolute path."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM processed_files WHERE filepath = ?",
                (str(filepath),),
            ).fetchone()
        return row is not None

    def get(self, filepath: Path | str) -> Optional[LedgerEntry]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT filepath, filehash, processed_at FROM processed_files WHERE filepath = ?",
                (str(filepath),),
            ).fetchone()
        return _to_entry(row) if row else None

    def list_entries(self, limit: Optional[int] = None) -> List[LedgerEntry]:
        """All entries, most recently processed first. Ties are broken by path."""
        query = (
            "SELECT filepath, filehash, processed_at FROM processed_files "
            "ORDER BY processed_at DESC, filepath ASC"
        )
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (int(limit),)
        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_to_entry(row) for row in rows]

    def list_paths(self, limit: Optional[int] = None) -> List[str]:
        return [entry.filepath for entry in self.list_entries(limit)]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def upsert(self, filepath: Path | str, filehash: str, processed_at: Optional[int] = None) -> LedgerEntry:
        """
        Inserts or replaces the entry for `filepath`.

        Raises:
            LedgerWriteFailure: If the row cannot be written.
        """
        entry = LedgerEntry(
            filepath=str(filepath),
            filehash=filehash,
            processed_at=int(time.time()) if processed_at is None else int(processed_at),
        )
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO processed_files (filepath, filehash, processed_at) "
                    "VALUES (?, ?, ?)",
                    (entry.filepath, entry.filehash, entry.processed_at),
                )
        except sqlite3.Error as e:
            raise LedgerWriteFailure(f"Could not record {filepath} in {self.db_path}: {e}") from e
        logger.debug(f"Ledger: recorded {entry.filepath} ({entry.filehash[:12]})")
        return entry


def _to_entry(row: sqlite3.Row) -> LedgerEntry:
    return LedgerEntry(
        filepath=row["filepath"],
        filehash=row["filehash"],
        processed_at=int(row["processed_at"]),
    )
