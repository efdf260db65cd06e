import traceback
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

# Config
from ..config.common import (
    ALL_OUTCOMES,
    OUTCOME_DRY_RUN,
    OUTCOME_FAILED,
    OUTCOME_KEPT_AS_IS,
    OUTCOME_REMUXED,
    OUTCOME_SKIPPED,
    OUTCOME_TRANSCODED,
)
from ..config.settings import ShrinkerSettings

# Domain objects
from ..domain.exceptions import WorkUnitException
from ..domain.media import DiscoveredFile
from ..domain.plan import Verdict
from ..domain.work_unit import LifecycleState, WorkUnit

# Services
from ..services.decision_service import DecisionEngine
from ..services.encoding_service import MediaEngine
from ..services.file_processing_service import ProcessVideoFiles
from ..services.ledger_service import ProcessedFileLedger
from ..services.logging_service import ErrorLog
from ..services.replacement_service import SafeReplacementProtocol
from ..utils.external_tools import ExternalTools
from ..utils.format_utils import format_size_change, format_timedelta


@dataclass
class RunSummary:
    """Terminal outcome counts for one run."""

    counts: Counter = field(default_factory=Counter)
    failed_files: List[Path] = field(default_factory=list)
    interrupted: bool = False

    def add(self, outcome: str, path: Optional[Path] = None):
        self.counts[outcome] += 1
        if outcome == OUTCOME_FAILED and path is not None:
            self.failed_files.append(path)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def log(self):
        parts = ", ".join(f"{outcome}: {self.counts[outcome]}" for outcome in ALL_OUTCOMES if self.counts[outcome])
        logger.info(f"Run summary: {self.total} file(s) - {parts or 'nothing to do'}")
        for path in self.failed_files:
            logger.warning(f"  Failed: {path}")
        if self.interrupted:
            logger.warning("The run was interrupted; remaining files will be picked up next time.")


class ShrinkPipeline:
    """
    Sequential batch over every video file below the scan root.

    Each file is one WorkUnit with exactly one terminal outcome. Per-file exceptions
    are caught at the WorkUnit boundary, written to the error log and never stop
    the batch; only startup problems (`StartupException`) and a user interrupt do.
    """

    def __init__(
        self,
        settings: ShrinkerSettings,
        engine=None,
        ledger: Optional[ProcessedFileLedger] = None,
        error_log: Optional[ErrorLog] = None,
        check_tools: bool = True,
    ):
        self.settings = settings
        self.engine = engine or MediaEngine(settings)
        self.ledger = ledger
        self.error_log = error_log
        self.check_tools = check_tools
        self.decision_engine: Optional[DecisionEngine] = None
        self.protocol: Optional[SafeReplacementProtocol] = None

    def startup_checks(self):
        """
        Opens the ledger and verifies the external tools.

        In dry-run mode the ledger is only read, and only if it already exists.

        Raises:
            StartupException: If the ledger is unwritable or ffmpeg/ffprobe cannot run.
        """
        if self.check_tools:
            ExternalTools.run_all(self.settings)

        if self.ledger is None:
            if not self.settings.dry_run:
                self.ledger = ProcessedFileLedger(self.settings.db_file)
            elif self.settings.db_file.is_file():
                self.ledger = ProcessedFileLedger(self.settings.db_file, read_only=True)
        if self.ledger is not None and not self.settings.dry_run:
            self.ledger.ensure_writable()

        if self.error_log is None and not self.settings.dry_run:
            self.error_log = ErrorLog(self.settings.error_log)

        self.decision_engine = DecisionEngine(self.settings, self.ledger)
        self.protocol = SafeReplacementProtocol(self.settings, self.engine, self.ledger)

    def run(self) -> RunSummary:
        mode = " (dry run)" if self.settings.dry_run else ""
        logger.info(f"HEVC shrink run{mode} in: {self.settings.scan_root}")
        self.startup_checks()

        process_files_handler = ProcessVideoFiles(
            self.settings.scan_root,
            excluded_dirs=(self.settings.trash_dir,),
        )
        process_files_handler.remove_stale_temps(dry_run=self.settings.dry_run)

        started = datetime.now()
        summary = self.process_multi_file(process_files_handler.files)
        summary.log()
        logger.info(f"Processing run finished in {format_timedelta(datetime.now() - started)}.")
        return summary

    def process_multi_file(self, files: Iterable[Path]) -> RunSummary:
        files_to_process_paths = list(files)
        summary = RunSummary()
        if not files_to_process_paths:
            logger.info("No video files found.")
            return summary

        logger.info(f"Found {len(files_to_process_paths)} video file(s).")
        for i, file_path in enumerate(files_to_process_paths, start=1):
            logger.info("=" * 44)
            logger.info(f"[{i}/{len(files_to_process_paths)}] {file_path}")
            try:
                outcome = self.process_single_file(file_path)
            except KeyboardInterrupt:
                # The WorkUnit's temps were already removed on the way out.
                logger.warning(f"Interrupted by user while processing {file_path.name}.")
                summary.interrupted = True
                break
            summary.add(outcome, file_path)
        return summary

    def process_single_file(self, file_path: Path) -> str:
        """
        Runs one WorkUnit to its terminal outcome.

        Returns:
            One of the `OUTCOME_*` constants.
        """
        if self.decision_engine is None or self.protocol is None:
            self.startup_checks()

        unit = WorkUnit(DiscoveredFile.from_path(file_path))
        source = unit.source
        try:
            if self.decision_engine.is_already_processed(source):
                unit.transition(LifecycleState.SKIPPED)
                logger.info("  [SKIP] Already processed.")
                return OUTCOME_SKIPPED

            unit.original_size = source.path.stat().st_size
            unit.profile = self.engine.probe(source.path)
            unit.transition(LifecycleState.PROBED)
            logger.info(f"  Probed: {unit.profile.describe()}")

            unit.decision = self.decision_engine.classify(source, unit.profile)
            unit.transition(LifecycleState.CLASSIFIED)
            verdict = unit.decision.verdict
            plan_text = f" [{unit.decision.plan.describe()}]" if unit.decision.plan else ""
            logger.info(f"  Verdict: {verdict.name} ({unit.decision.reason}){plan_text}")

            if self.settings.dry_run:
                unit.transition(LifecycleState.SKIPPED)
                logger.info(f"  [DRY RUN] Would {verdict.value.replace('_', ' ')} -> {source.final_path.name}")
                return OUTCOME_DRY_RUN

            if verdict is Verdict.KEEP_AS_IS:
                result = self.protocol.keep_as_is(unit)
                outcome = OUTCOME_KEPT_AS_IS
            elif verdict is Verdict.REMUX_ONLY:
                result = self.protocol.remux_only(unit)
                unit.transition(LifecycleState.REMUXED_IN_PLACE)
                outcome = OUTCOME_REMUXED
            else:
                result = self.protocol.transcode(unit, unit.decision.plan)
                unit.transition(LifecycleState.TRANSCODED)
                outcome = OUTCOME_TRANSCODED

            unit.final_path = result.final_path
            unit.final_size = result.final_size
            unit.transition(LifecycleState.FINALIZED)
            logger.success(
                f"Completed: {source.path.name} -> {result.final_path.name}, "
                f"{format_size_change(unit.original_size, unit.final_size)}"
            )
            return outcome

        except WorkUnitException as e:
            self._record_failure(unit, e.stage, str(e))
            return OUTCOME_FAILED
        except Exception as e:
            tb_str = traceback.format_exception(e)
            logger.debug(f"Traceback for {source.path.name}:\n{''.join(tb_str)}")
            self._record_failure(unit, "internal", f"{type(e).__name__}: {e}")
            return OUTCOME_FAILED

    def _record_failure(self, unit: WorkUnit, stage: str, message: str):
        unit.fail(stage, message)
        logger.error(f"  [ERROR] {stage} failed for {unit.source.path.name}: {message}")
        if self.error_log is not None:
            self.error_log.write(stage, unit.source.path, message)
