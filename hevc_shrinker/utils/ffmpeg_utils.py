"""
This module provides utility functions for running FFmpeg and other external tools.

`run_cmd` is the single place where the application starts a child process. It never
raises for tool failures: callers receive either the `CompletedProcess` (and inspect
its return code) or `None` when the command could not run at all.
"""

import os
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional

from loguru import logger


def display_cmd(cmd_list: List[str]) -> str:
    """Quotes and joins a command list the way the current platform's shell would."""
    if os.name == "nt":
        return subprocess.list2cmdline(cmd_list)
    return shlex.join(cmd_list)


def run_cmd(
    cmd_list: List[str],
    src_file_for_log: Path = Path(),
    timeout: Optional[float] = None,
) -> Optional[subprocess.CompletedProcess]:
    """
    Executes an external command and captures its output.

    Args:
        cmd_list: The command and its arguments. Never run through a shell.
        src_file_for_log: The source file being processed, used for logging context.
        timeout: Seconds after which the child is killed and the call is treated as
                 failed. None waits indefinitely.

    Returns:
        The `CompletedProcess` with return code, stdout and stderr, or `None` if the
        command could not start (e.g. the executable is missing) or timed out.
    """
    cmd_list = [str(part) for part in cmd_list]
    if not cmd_list:
        logger.error("run_cmd received an empty command list.")
        return None

    name = src_file_for_log.name or "N/A"
    try:
        result = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.error(
            f"Command not found ('{cmd_list[0]}'). Ensure it's in your PATH or configured in config.user.yaml."
        )
        return None
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s for {name}: {display_cmd(cmd_list)}")
        return None
    except OSError as e:
        logger.error(f"Could not run {cmd_list[0]} for {name}: {e}")
        return None

    if result.stderr and result.returncode != 0:
        logger.debug(f"stderr (rc={result.returncode}): {result.stderr}")
    elif result.stderr:
        logger.trace(f"stderr (rc=0): {result.stderr}")
    return result


def last_stderr_line(result: Optional[subprocess.CompletedProcess]) -> str:
    """The last non-empty stderr line of a finished command, for error messages."""
    if result is None or not result.stderr:
        return ""
    lines = [line.strip() for line in result.stderr.splitlines() if line.strip()]
    return lines[-1] if lines else ""
