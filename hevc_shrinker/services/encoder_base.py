from pathlib import Path
from typing import List, Type

from loguru import logger

from ..config.settings import ShrinkerSettings
from ..domain.exceptions import WorkUnitException
from ..utils.ffmpeg_utils import display_cmd, last_stderr_line, run_cmd


class Encoder:
    """
    Base class for the services that drive an external tool for one protocol stage.

    Subclasses build command lists; `_run` executes them and turns every way a tool
    can fail (not runnable, timed out, non-zero exit, missing or empty output) into
    the stage-specific `WorkUnitException` subclass.
    """

    def __init__(self, settings: ShrinkerSettings):
        self.settings = settings

    def _ffmpeg_head(self) -> List[str]:
        """The leading part of every ffmpeg invocation."""
        return [self.settings.ffmpeg_bin, "-y", "-hide_banner", "-nostdin", "-loglevel", "error"]

    def _run(
        self,
        cmd_list: List[str],
        source: Path,
        output: Path,
        failure_cls: Type[WorkUnitException],
        stage: str | None = None,
    ) -> Path:
        """
        Runs `cmd_list` and verifies it produced a non-empty `output`.

        Returns:
            `output`.

        Raises:
            failure_cls: If the command did not produce a usable output file.
        """
        logger.debug(f"[{stage or failure_cls.default_stage}] {display_cmd(cmd_list)}")
        res = run_cmd(
            cmd_list,
            src_file_for_log=source,
            timeout=self.settings.command_timeout,
        )

        tool = Path(cmd_list[0]).name
        if res is None:
            raise failure_cls(f"{tool} could not be run or timed out for {source.name}", stage)
        if res.returncode != 0:
            detail = last_stderr_line(res)
            raise failure_cls(
                f"{tool} exited with code {res.returncode}" + (f": {detail}" if detail else ""),
                stage,
            )
        if not output.is_file():
            raise failure_cls(f"{tool} reported success but {output.name} is missing", stage)
        if output.stat().st_size == 0:
            raise failure_cls(f"{tool} reported success but {output.name} is empty", stage)
        return output
