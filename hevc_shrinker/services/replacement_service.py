"""
The safe replacement protocol.

Everything that changes a user's files happens here, in a fixed order:

    START -> VIDEO_READY -> AUDIO_READY -> MUXED -> DECIDED -> COMMITTED

Intermediate results are written to temp names next to the source (see
`config.common.TEMP_SUFFIXES`) and owned by a `TempArtifacts` scope, so a failure
at any stage removes them before the next file starts. Neither the source nor the
final path is written until the DECIDED candidate is promoted with an atomic
`os.replace`. Files that lose their place are relocated into the holding directory,
never deleted, and the ledger is written only after promotion succeeded.
"""
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.common import (
    TEMP_AUDIO_AAC_SUFFIX,
    TEMP_AUDIO_COPY_SUFFIX,
    TEMP_AUDIO_WAV_SUFFIX,
    TEMP_NEW_SUFFIX,
    TEMP_ORIG_REMUX_SUFFIX,
    TEMP_REMUX_SUFFIX,
    TEMP_VIDEO_SUFFIX,
)
from ..config.settings import ShrinkerSettings
from ..domain.exceptions import CommitFailure, LedgerWriteFailure, WorkUnitException
from ..domain.media import DiscoveredFile
from ..domain.plan import AudioAction, EncodingPlan, VideoAction
from ..domain.temp_models import TempArtifacts
from ..domain.work_unit import ProtocolState, ProtocolTracker, WorkUnit
from ..utils.format_utils import formatted_size
from .cover_art_service import find_cover_art
from .ledger_service import LedgerEntry, ProcessedFileLedger


def is_same_file(path: Path, other: Path) -> bool:
    """
    True when both names refer to one file.

    `Movie.MKV` and `Movie.mkv` are different paths but the same file on a
    case-insensitive filesystem, so equal paths are not the only match.
    """
    if path == other:
        return True
    try:
        return os.path.samefile(path, other)
    except OSError:
        return False


class HoldingArea:
    """
    The holding directory for displaced files.

    A relocated file keeps its path relative to the scan root, e.g.
    `<root>/Shows/S01/ep1.avi` goes to `<trash>/Shows/S01/ep1.avi`. If that name is
    already taken, a counter is inserted before the extension (`ep1.1.avi`).
    """

    def __init__(self, trash_dir: Path, scan_root: Path):
        self.trash_dir = Path(trash_dir)
        self.scan_root = Path(scan_root)

    def destination_for(self, path: Path) -> Path:
        try:
            relative = Path(path).relative_to(self.scan_root)
        except ValueError:
            relative = Path(Path(path).name)
        destination = self.trash_dir / relative
        counter = 1
        while destination.exists() or destination.is_symlink():
            destination = destination.with_name(f"{relative.stem}.{counter}{relative.suffix}")
            counter += 1
        return destination

    def relocate(self, path: Path) -> Path:
        """Moves `path` into the holding directory and returns its new location."""
        destination = self.destination_for(path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(path), str(destination))
        logger.info(f"  Moved {Path(path).name} to holding area: {destination}")
        return destination

    def preserve_copy(self, path: Path) -> Path:
        """
        Puts a second name for `path` into the holding directory, leaving `path` in place.

        A hard link costs no space; a full copy is made when linking is impossible
        (different filesystem, or a filesystem without links).
        """
        destination = self.destination_for(path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.link(path, destination)
        except OSError as e:
            logger.debug(f"Hard link into holding area failed ({e}). Copying instead.")
            shutil.copy2(path, destination)
        logger.info(f"  Preserved original {Path(path).name} in holding area: {destination}")
        return destination


@dataclass(frozen=True)
class ReplacementResult:
    """What a committed WorkUnit left behind."""

    final_path: Path
    final_size: int
    kept_new_encode: bool
    entry: LedgerEntry


class SafeReplacementProtocol:
    """Executes verdicts against the filesystem and records them in the ledger."""

    def __init__(
        self,
        settings: ShrinkerSettings,
        engine,
        ledger: ProcessedFileLedger,
        holding: Optional[HoldingArea] = None,
    ):
        self.settings = settings
        self.engine = engine
        self.ledger = ledger
        self.holding = holding or HoldingArea(settings.trash_dir, settings.scan_root)

    # -------------------------------------------------------------------------
    # Verdict paths
    # -------------------------------------------------------------------------

    def keep_as_is(self, unit: WorkUnit) -> ReplacementResult:
        """The source already is the final file; only the ledger is written."""
        final = unit.source.path
        entry = self._record(final)
        return ReplacementResult(final, final.stat().st_size, False, entry)

    def remux_only(self, unit: WorkUnit) -> ReplacementResult:
        """Rewraps the source into `<stem>.mkv` and moves the source to the holding area."""
        source = unit.source
        with TempArtifacts() as temps:
            remux_tmp = temps.register(source.temp_path(TEMP_REMUX_SUFFIX))
            logger.info(f"  Remuxing {source.extension} to MKV")
            self.engine.remux(source.path, remux_tmp)
            final = self._commit(source, remux_tmp, temps, relocate_source=True)
        entry = self._record(final)
        return ReplacementResult(final, final.stat().st_size, False, entry)

    def transcode(self, unit: WorkUnit, plan: EncodingPlan) -> ReplacementResult:
        """
        Rebuilds the file per `plan` and keeps the smaller of the new encode and the
        losslessly remuxed original (or the new encode unconditionally when the plan
        says so).

        Raises:
            WorkUnitException: A subclass naming the failed stage. All temps are
                removed and neither the source nor the final path was modified.
        """
        source = unit.source
        tracker = ProtocolTracker()
        try:
            with TempArtifacts() as temps:
                video = self._prepare_video(source, plan, temps)
                tracker.advance(ProtocolState.VIDEO_READY)

                audio = self._prepare_audio(source, plan, temps)
                tracker.advance(ProtocolState.AUDIO_READY)

                new_tmp = temps.register(source.temp_path(TEMP_NEW_SUFFIX))
                cover = find_cover_art(source)
                self.engine.mux(video, audio, new_tmp, cover, source.path)
                tracker.advance(ProtocolState.MUXED)

                candidate, kept_new = self._decide(source, plan, new_tmp, temps)
                tracker.advance(ProtocolState.DECIDED)

                relocate = kept_new or not self.settings.leave_original_on_remux_kept
                final = self._commit(
                    source,
                    candidate,
                    temps,
                    relocate_source=relocate,
                    preserve_replaced_source=kept_new,
                )
                tracker.advance(ProtocolState.COMMITTED)
        except WorkUnitException:
            tracker.fail()
            raise

        entry = self._record(final)
        return ReplacementResult(final, final.stat().st_size, kept_new, entry)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _prepare_video(self, source: DiscoveredFile, plan: EncodingPlan, temps: TempArtifacts) -> Path:
        video_tmp = temps.register(source.temp_path(TEMP_VIDEO_SUFFIX))
        if plan.video_action is VideoAction.COPY_EXISTING:
            return self.engine.extract_video(source, video_tmp, plan.combined_stream_load)
        return self.engine.transcode_video(source, plan, video_tmp)

    def _prepare_audio(self, source: DiscoveredFile, plan: EncodingPlan, temps: TempArtifacts) -> Optional[Path]:
        if plan.audio_action is AudioAction.NO_AUDIO:
            logger.info("  No audio stream; the new file will be video-only")
            return None
        if plan.audio_action is AudioAction.COPY_EXISTING:
            audio_tmp = temps.register(source.temp_path(TEMP_AUDIO_COPY_SUFFIX))
            return self.engine.extract_audio(source, audio_tmp, plan.combined_stream_load)
        audio_tmp = temps.register(source.temp_path(TEMP_AUDIO_AAC_SUFFIX))
        wav_tmp = temps.register(source.temp_path(TEMP_AUDIO_WAV_SUFFIX))
        return self.engine.transcode_audio(source, audio_tmp, wav_tmp, plan.combined_stream_load)

    def _decide(
        self,
        source: DiscoveredFile,
        plan: EncodingPlan,
        new_tmp: Path,
        temps: TempArtifacts,
    ) -> tuple[Path, bool]:
        """Returns (candidate, kept_new_encode)."""
        new_size = new_tmp.stat().st_size
        if plan.always_keep_new_encode:
            logger.info(
                f"  {source.extension} sources always keep the new encode ({formatted_size(new_size)})"
            )
            return new_tmp, True

        orig_tmp = temps.register(source.temp_path(TEMP_ORIG_REMUX_SUFFIX))
        logger.info("  Remuxing original to MKV for comparison")
        self.engine.remux(source.path, orig_tmp)
        orig_size = orig_tmp.stat().st_size

        # The new encode has to be strictly smaller; a tie keeps the untouched streams.
        if new_size < orig_size:
            logger.info(
                f"  New encode is smaller: {formatted_size(new_size)} < {formatted_size(orig_size)}"
            )
            return new_tmp, True
        logger.info(
            f"  New encode is not smaller ({formatted_size(new_size)} >= {formatted_size(orig_size)}). "
            "Keeping remuxed original."
        )
        return orig_tmp, False

    def _commit(
        self,
        source: DiscoveredFile,
        candidate: Path,
        temps: TempArtifacts,
        relocate_source: bool,
        preserve_replaced_source: bool = False,
    ) -> Path:
        """
        Promotes `candidate` to `<dir>/<stem>.mkv`.

        Order of operations keeps every byte reachable: a file occupying the final
        path is displaced to the holding area first; the candidate is promoted with
        an atomic replace; only then is the source relocated. When the source itself
        is the final path, it is preserved in the holding area before the replace if
        `preserve_replaced_source` is set.

        Raises:
            CommitFailure: If any filesystem step fails.
        """
        final = source.final_path
        replaces_source = is_same_file(final, source.path)
        try:
            if replaces_source:
                if preserve_replaced_source:
                    self.holding.preserve_copy(source.path)
            elif final.exists():
                logger.warning(f"  {final.name} already exists and is not the source. Moving it aside.")
                self.holding.relocate(final)

            os.replace(candidate, final)
            temps.release(candidate)
            logger.debug(f"  Promoted {candidate.name} -> {final.name}")

            if not replaces_source:
                if relocate_source:
                    self.holding.relocate(source.path)
                else:
                    logger.info(f"  Leaving original in place: {source.path.name}")
        except OSError as e:
            raise CommitFailure(f"Could not promote {candidate.name} to {final.name}: {e}") from e
        return final

    def _record(self, final: Path) -> LedgerEntry:
        try:
            fingerprint = self.engine.fingerprint(final)
        except OSError as e:
            raise LedgerWriteFailure(f"Could not fingerprint {final}: {e}") from e
        return self.ledger.upsert(final, fingerprint)
