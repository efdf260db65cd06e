"""
Defines custom exception types for the HEVC Shrinker application.

Per-file problems raise a `WorkUnitException` subclass that carries the name of the
protocol stage that failed. The pipeline catches these at the WorkUnit boundary,
records one error-log line, and moves on to the next file. Conditions that make the
whole run pointless are raised as `StartupException` before any file is touched.

All custom exceptions inherit from the base `ShrinkerException`.
"""


class ShrinkerException(Exception):
    """Base class for all custom exceptions in the HEVC Shrinker application."""

    pass


class StartupException(ShrinkerException):
    """
    Raised for unrecoverable conditions detected before the batch starts.

    Examples are an unwritable ledger store or FFmpeg not being runnable. The run
    command exits with a non-zero status.
    """

    pass


# --- Per-File Exceptions ---
class WorkUnitException(ShrinkerException):
    """
    Base class for failures confined to a single file.

    Attributes:
        stage: Name of the protocol stage that failed (e.g. "video", "mux").
    """

    default_stage = "unknown"

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage or self.default_stage


class ProbeFailure(WorkUnitException):
    """Raised when ffprobe cannot report a video codec for the file."""

    default_stage = "probe"


class TranscodeFailure(WorkUnitException):
    """
    Raised when obtaining the video or audio elementary stream fails.

    Covers both stream-copy extraction and re-encoding; `stage` is "video" or "audio".
    """

    default_stage = "transcode"


class MuxFailure(WorkUnitException):
    """Raised when combining the elementary streams into the new container fails."""

    default_stage = "mux"


class RemuxFailure(WorkUnitException):
    """
    Raised when a lossless container rewrap fails.

    Used both for the remux-only path and for the comparison remux of the original.
    """

    default_stage = "remux"


class CommitFailure(WorkUnitException):
    """Raised when promoting the chosen file or relocating the original fails."""

    default_stage = "commit"


class LedgerWriteFailure(WorkUnitException):
    """
    Raised when the ledger cannot record a finalized file.

    The final file stays on disk but is not recorded; the next run reconsiders it.
    """

    default_stage = "ledger"
