"""
Provides services for discovering the files a run will process.

This module contains the logic for the initial phase of the pipeline, where
the application scans the target tree. The services here are responsible for:
- Finding all video files in a directory tree (extension match is case-insensitive).
- Excluding the holding directory, so displaced originals are never reprocessed.
- Removing stale temp artifacts an interrupted run left next to its sources.
"""

from pathlib import Path
from typing import List, Set, Tuple

from loguru import logger

from ..config.video import VIDEO_EXTENSIONS
from ..domain.temp_models import is_temp_artifact, temp_owner_stem


class ProcessFiles:
    """
    A base class for discovering files to be processed.

    Attributes:
        source_dir: The scan root.
        excluded_dirs: Directories (and everything below them) that are never scanned.
        dirs: All directories to be scanned.
        files: The discovered files, sorted for a stable visiting order.
        stale_temps: Leftover temp artifacts found during the scan.
    """

    def __init__(self, path: Path, excluded_dirs: Tuple[Path, ...] = ()):
        self.source_dir: Path = Path(path).resolve()
        self.excluded_dirs: Tuple[Path, ...] = tuple(Path(d).resolve() for d in excluded_dirs)
        self.dirs: Set[Path] = set()
        self.files: Tuple[Path, ...] = tuple()
        self.stale_temps: Tuple[Path, ...] = tuple()

        if not self.source_dir.is_dir():
            logger.error(f"Scan root does not exist or is not a directory: {self.source_dir}")
            return

        self.set_dirs_to_scan()
        self.set_files_to_process()

    def _is_excluded(self, path: Path) -> bool:
        return any(path == excluded or excluded in path.parents for excluded in self.excluded_dirs)

    def set_dirs_to_scan(self):
        """Collects the scan root and every subdirectory outside the excluded ones."""
        discovered_dirs = set()
        if not self._is_excluded(self.source_dir):
            discovered_dirs.add(self.source_dir)
        for d_path in self.source_dir.rglob("*"):
            if d_path.is_dir() and not self._is_excluded(d_path.resolve()):
                discovered_dirs.add(d_path.resolve())
        self.dirs = discovered_dirs
        logger.debug(f"Set {len(self.dirs)} directories to scan under {self.source_dir}")

    def set_files_to_process(self):
        raise NotImplementedError("Subclasses must implement set_files_to_process().")

    def remove_stale_temps(self, dry_run: bool = False) -> List[Path]:
        """
        Deletes the temp artifacts found by the scan.

        Returns:
            The paths that were removed (or, in dry-run mode, would be removed).
        """
        removed = []
        for temp_path in self.stale_temps:
            if dry_run:
                logger.info(f"[DRY RUN] Would remove stale temp artifact: {temp_path}")
                removed.append(temp_path)
                continue
            logger.warning(f"Removing stale temp artifact from an interrupted run: {temp_path}")
            try:
                temp_path.unlink(missing_ok=True)
                removed.append(temp_path)
            except OSError as e:
                logger.error(f"Could not remove stale temp artifact {temp_path}: {e}")
        return removed


class ProcessVideoFiles(ProcessFiles):
    """
    Discovers video files with extensions listed in `VIDEO_EXTENSIONS`.

    Protocol temp artifacts such as `Movie.shrink-video.mkv` carry a video
    extension too; they are set aside as stale temps instead of being processed.
    A temp-looking name counts as stale only while its source (`Movie.<video ext>`)
    sits in the same directory. Without one it is a user's file: a video extension
    makes it an ordinary input, anything else is left alone.
    """

    def set_files_to_process(self):
        discovered_video_files = []
        stale_temps = []
        for d_path in self.dirs:
            entries = [f_path for f_path in d_path.iterdir() if f_path.is_file()]
            owner_stems = {
                f_path.stem
                for f_path in entries
                if not is_temp_artifact(f_path) and f_path.suffix.lower() in VIDEO_EXTENSIONS
            }
            for f_path in entries:
                owner_stem = temp_owner_stem(f_path)
                if owner_stem is not None and owner_stem in owner_stems:
                    stale_temps.append(f_path.resolve())
                elif f_path.suffix.lower() in VIDEO_EXTENSIONS:
                    if owner_stem is not None:
                        logger.info(f"No source beside {f_path.name}; treating it as a regular video.")
                    discovered_video_files.append(f_path.resolve())
                elif owner_stem is not None:
                    logger.debug(f"No source beside {f_path.name}; leaving it alone.")
        self.files = tuple(sorted(set(discovered_video_files)))
        self.stale_temps = tuple(sorted(set(stale_temps)))
        logger.debug(
            f"ProcessVideoFiles: Discovered {len(self.files)} video files "
            f"and {len(self.stale_temps)} stale temp artifacts."
        )
