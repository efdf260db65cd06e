"""
This module provides classes for managing the application's file logs.

Console narration goes through loguru (configured in `main.py`). The error log is
the durable audit trail: a plain-text, append-only file with exactly one line per
failed file, so it can be grepped or tailed after an unattended batch run.
"""

from datetime import datetime
from pathlib import Path

from loguru import logger


class Log:
    """
    A base class for file-backed logs.

    It handles the basic setup of the log file path and makes sure its parent
    directory exists.
    """

    def __init__(self, log_file_path: Path):
        """
        Args:
            log_file_path: The file the log appends to. Its parent directory is
                           created if necessary.
        """
        self.log_file_path: Path = Path(log_file_path).resolve()
        self.log_dir: Path = self.log_file_path.parent
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, *args, **kwargs):
        """Subclasses define their record format."""
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """
    Appends one line per failed file:

        2026-01-02T03:04:05 [video] /abs/path/Movie.avi: ffmpeg exited with code 1: ...

    The stage names the protocol step that failed, the path is the source file's
    absolute path. Newlines inside the message are folded so each failure stays on
    one line.
    """

    def write(self, stage: str, file_path: Path, message: str):
        """
        Writes one failure line.

        A failure to write the error log itself never aborts the batch; it is
        reported through loguru instead so the message is not lost.
        """
        timestamp = datetime.now().isoformat(timespec="seconds")
        flat_message = " | ".join(part.strip() for part in str(message).splitlines() if part.strip())
        line = f"{timestamp} [{stage}] {Path(file_path).resolve()}: {flat_message}\n"

        try:
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            logger.error(f"Original error line: {line.rstrip()}")
