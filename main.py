"""
Main entry point for HEVC Shrinker.

This script parses command-line arguments, builds the run configuration and runs
the shrink pipeline over the target directory tree.

Exit status is 0 when the scan completed, even if individual files failed (they
are listed in the error log and retried next run), and 1 when the run could not
start at all.
"""

import sys
from pathlib import Path

from loguru import logger

from hevc_shrinker.cli import configure_logger, get_args
from hevc_shrinker.config.common import load_user_config
from hevc_shrinker.config.settings import ShrinkerSettings
from hevc_shrinker.domain.exceptions import StartupException
from hevc_shrinker.pipeline.video_pipeline import ShrinkPipeline


def main(argv=None) -> int:
    """
    Main function to start the shrink run.

    1. Parses command-line arguments and configures the logger.
    2. Merges defaults, the user YAML file and the flags into `ShrinkerSettings`.
    3. Runs the pipeline; startup failures end the run with status 1.
    """
    args = get_args(argv)
    configure_logger(args.log_level, args.log_file)
    logger.debug(f"Parsed arguments: {args}")

    user_config = load_user_config(Path(args.config) if args.config else None)
    try:
        settings = ShrinkerSettings.build(args, user_config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    try:
        summary = ShrinkPipeline(settings).run()
    except StartupException as e:
        logger.error(f"Cannot start: {e}")
        return 1

    if summary.interrupted:
        logger.warning("HEVC Shrinker stopped early.")
    else:
        logger.success("HEVC Shrinker finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
