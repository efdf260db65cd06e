"""
Common configuration settings used throughout the application.

This module holds the globally shared defaults: logging format, the names of the
persisted state files, the temp-artifact naming scheme and the location of the
optional user YAML file. The user file is only *read* here; merging it with the
command-line flags happens once in `settings.ShrinkerSettings.build`.
"""
from pathlib import Path

import yaml
from loguru import logger

# --- User-Defined Configuration ---
# An optional YAML file in the working directory. See `load_user_config`.
USER_CONFIG_FILE_NAME = "config.user.yaml"


# --- Logging Configuration ---

# The format string for the Loguru logger.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# Size at which the optional `--log-file` sink is rotated.
LOG_FILE_ROTATION = "10 MB"


# --- Persisted State ---

# SQLite store recording every finalized file (see services.ledger_service).
DEFAULT_DB_FILE = Path("processed_files.db")

# Holding area for discarded originals. Never scanned, never emptied by this tool.
DEFAULT_TRASH_DIR = Path(".Trash")

# Append-only, one line per failed file.
DEFAULT_ERROR_LOG = Path("error.log")


# --- Temp Artifacts ---
# Every file the replacement protocol creates next to a source carries this marker,
# e.g. `Movie.shrink-video.mkv`. Discovery ignores such names and removes stale
# ones left behind by an interrupted run.
TEMP_MARKER = ".shrink-"

TEMP_VIDEO_SUFFIX = f"{TEMP_MARKER}video.mkv"
TEMP_AUDIO_COPY_SUFFIX = f"{TEMP_MARKER}audio.aac"
TEMP_AUDIO_AAC_SUFFIX = f"{TEMP_MARKER}audio.m4a"
TEMP_AUDIO_WAV_SUFFIX = f"{TEMP_MARKER}audio.wav"
TEMP_NEW_SUFFIX = f"{TEMP_MARKER}new.mkv"
TEMP_ORIG_REMUX_SUFFIX = f"{TEMP_MARKER}orig.mkv"
TEMP_REMUX_SUFFIX = f"{TEMP_MARKER}remux.mkv"

TEMP_SUFFIXES = (
    TEMP_VIDEO_SUFFIX,
    TEMP_AUDIO_COPY_SUFFIX,
    TEMP_AUDIO_AAC_SUFFIX,
    TEMP_AUDIO_WAV_SUFFIX,
    TEMP_NEW_SUFFIX,
    TEMP_ORIG_REMUX_SUFFIX,
    TEMP_REMUX_SUFFIX,
)


# --- Outcome Constants ---
# Terminal outcomes of a WorkUnit, used for narration and the run summary.
OUTCOME_SKIPPED = "skipped"
OUTCOME_KEPT_AS_IS = "kept_as_is"
OUTCOME_REMUXED = "remuxed"
OUTCOME_TRANSCODED = "transcoded"
OUTCOME_FAILED = "failed"
OUTCOME_DRY_RUN = "dry_run"

ALL_OUTCOMES = (
    OUTCOME_SKIPPED,
    OUTCOME_KEPT_AS_IS,
    OUTCOME_REMUXED,
    OUTCOME_TRANSCODED,
    OUTCOME_FAILED,
    OUTCOME_DRY_RUN,
)


def load_user_config(config_path: Path | None = None) -> dict:
    """
    Reads the optional user YAML configuration.

    Args:
        config_path: Explicit file to read. When None, `config.user.yaml` in the
                     current working directory is tried.

    Returns:
        The parsed mapping, or an empty dict when no file exists or it cannot be parsed.
        An explicitly requested file that does not exist is reported as a warning.
    """
    explicit = config_path is not None
    path = Path(config_path) if explicit else Path.cwd() / USER_CONFIG_FILE_NAME

    if not path.is_file():
        if explicit:
            logger.warning(f"Config file '{path}' not found. Using defaults.")
        else:
            logger.debug(f"User config '{path}' not found. Using defaults.")
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{path}': {e}")
        return {}

    if not isinstance(user_config, dict):
        logger.warning(f"'{path}' does not contain a mapping. Ignoring it.")
        return {}

    logger.debug(f"Loaded user config from '{path}'.")
    return user_config
