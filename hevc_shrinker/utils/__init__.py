"""
Utilities Package for HEVC Shrinker.

This package contains helper modules that are not specific to any single part of
the shrink workflow.

Modules:
    - ffmpeg_utils.py: `run_cmd`, the single place child processes are started.
    - format_utils.py: Human-readable sizes, durations and timestamps.
    - external_tools.py: Startup verification of ffmpeg, ffprobe and qaac.
"""
