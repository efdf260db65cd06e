"""
This module provides the ExternalTools class to verify the external programs the
application drives: FFmpeg, ffprobe and, for the default audio backend, qaac.
"""
import subprocess

from loguru import logger

from ..config.audio import AAC_ENCODER_QAAC
from ..config.settings import ShrinkerSettings
from ..domain.exceptions import StartupException


class ExternalTools:
    """
    Startup checks for the executables named in `ShrinkerSettings`.

    FFmpeg and ffprobe are mandatory; without them no file can be processed, so a
    failed check raises `StartupException`. qaac is only needed when it is the
    configured AAC backend, and even then a failure is only a warning: files whose
    audio can be copied still process, and the others fail individually.
    """

    @staticmethod
    def _version_line(cmd: str, version_flag: str = "-version") -> str:
        """
        Runs `<cmd> <version_flag>` and returns the first line of its output.

        Raises:
            StartupException: If the command is missing or exits non-zero.
        """
        try:
            result = subprocess.run(
                [cmd, version_flag],
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.CalledProcessError as e:
            raise StartupException(
                f"'{cmd} {version_flag}' failed (return code {e.returncode}):\n{e.stderr}"
            ) from e
        except (FileNotFoundError, PermissionError) as e:
            raise StartupException(
                f"Command '{cmd}' not found. Please ensure it is installed and accessible.\n"
                "You can either add it to your system's PATH or specify its location in the "
                "'config.user.yaml' file."
            ) from e
        output_lines = (result.stdout or result.stderr or "").splitlines()
        return output_lines[0] if output_lines else ""

    @staticmethod
    def verify_ffmpeg(settings: ShrinkerSettings):
        """Verifies that both ffmpeg and ffprobe can be executed."""
        for cmd in (settings.ffmpeg_bin, settings.ffprobe_bin):
            first_line = ExternalTools._version_line(cmd)
            logger.info(f"Version check successful for '{cmd}': {first_line}")

    @staticmethod
    def verify_qaac(settings: ShrinkerSettings) -> bool:
        """Returns True when qaac is runnable; only warns otherwise."""
        if settings.aac_encoder != AAC_ENCODER_QAAC:
            logger.debug(f"Audio backend is '{settings.aac_encoder}'. Skipping qaac check.")
            return False
        try:
            first_line = ExternalTools._version_line(settings.qaac_bin, "--check")
        except StartupException as e:
            logger.warning(
                f"qaac is not usable ({e}). Files whose audio has to be re-encoded will fail "
                "until qaac is installed or `audio.encoder: ffmpeg` is configured."
            )
            return False
        logger.info(f"qaac check successful: {first_line}")
        return True

    @staticmethod
    def run_all(settings: ShrinkerSettings):
        """
        Runs all startup checks in sequence.
        This is called once when the application starts.

        Raises:
            StartupException: If ffmpeg or ffprobe cannot be run.
        """
        ExternalTools.verify_ffmpeg(settings)
        ExternalTools.verify_qaac(settings)
