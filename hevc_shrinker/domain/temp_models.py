"""
Scoped ownership of the temp files a WorkUnit creates.

Every artifact the replacement protocol writes next to a source is registered here
before the external tool that produces it runs. Leaving the `with` block removes
everything still registered, on success and on every failure path alike; a file
that has been promoted to its final location is released first so it survives.
"""
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.common import TEMP_MARKER, TEMP_SUFFIXES


class TempArtifacts:
    """
    Tracks temp paths for one WorkUnit.

    Usage:
        with TempArtifacts() as temps:
            video = temps.register(source.temp_path(TEMP_VIDEO_SUFFIX))
            ...
            temps.release(promoted_path)
    """

    def __init__(self):
        self._paths: List[Path] = []

    def __enter__(self) -> "TempArtifacts":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
        return False

    def register(self, path: Path) -> Path:
        """
        Claims `path` for this WorkUnit and removes any stale file already there.

        Returns:
            The same path, for call chaining.
        """
        path = Path(path)
        if path not in self._paths:
            self._paths.append(path)
        _remove_quietly(path, reason="stale")
        return path

    def release(self, path: Path):
        """Stops tracking `path`, e.g. after it was moved to its final name."""
        path = Path(path)
        if path in self._paths:
            self._paths.remove(path)

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    def cleanup(self):
        """Removes every registered path that still exists."""
        for path in reversed(self._paths):
            _remove_quietly(path, reason="temp")
        self._paths.clear()


def is_temp_artifact(path: Path) -> bool:
    """True for names produced by the replacement protocol, e.g. `Movie.shrink-video.mkv`."""
    return temp_owner_stem(path) is not None


def temp_owner_stem(path: Path) -> Optional[str]:
    """
    Stem of the source a temp artifact was written for, or None for other names.

    `Movie.shrink-video.mkv` -> `Movie`. A real file whose name merely ends the
    same way only counts as stale when a source with that stem sits beside it.
    """
    name = Path(path).name
    if TEMP_MARKER not in name:
        return None
    for suffix in TEMP_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return None


def _remove_quietly(path: Path, reason: str):
    try:
        if path.is_file() or path.is_symlink():
            path.unlink()
            logger.debug(f"Removed {reason} artifact: {path.name}")
    except OSError as e:
        # A leftover temp is reported, never fatal: discovery removes it next run.
        logger.warning(f"Could not remove {reason} artifact {path}: {e}")
