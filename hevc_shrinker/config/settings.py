"""
The immutable run configuration.

`ShrinkerSettings` is built exactly once at startup from three layers, lowest
priority first: the module defaults in this package, the optional user YAML file,
and the command-line flags. The frozen instance is then passed by parameter into
the decision engine, the encoders and the replacement protocol.
"""
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .audio import AAC_ENCODERS, AAC_VBR_QUALITY, DEFAULT_AAC_ENCODER, FFMPEG_AAC_BITRATE
from .common import DEFAULT_DB_FILE, DEFAULT_ERROR_LOG, DEFAULT_TRASH_DIR
from .video import (
    DENOISE_LEVEL,
    FRAME_HALVING_THRESHOLD,
    MAX_HEIGHT,
    X265_CRF,
    X265_NO_SAO,
    X265_PROFILE,
    X265_SELECTIVE_SAO,
)

# Keys accepted in the user YAML file, per section.
_KNOWN_USER_KEYS = {
    "paths": {"ffmpeg_dir", "qaac"},
    "ledger": {"db_file", "trash_dir", "error_log"},
    "video": {"crf", "profile", "denoise_level", "max_height", "frame_halving_threshold"},
    "audio": {"encoder", "vbr_quality"},
    "run": {"command_timeout"},
}


@dataclass(frozen=True)
class ShrinkerSettings:
    """Application configuration for one run."""

    scan_root: Path
    db_file: Path
    trash_dir: Path
    error_log: Path

    # External tools
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    qaac_bin: str = "qaac"

    # Video quality policy
    crf: int = X265_CRF
    x265_profile: str = X265_PROFILE
    no_sao: int = X265_NO_SAO
    selective_sao: int = X265_SELECTIVE_SAO
    denoise_level: int = DENOISE_LEVEL
    max_height: int = MAX_HEIGHT
    frame_halving_threshold: float = FRAME_HALVING_THRESHOLD

    # Audio quality policy
    aac_encoder: str = DEFAULT_AAC_ENCODER
    aac_vbr_quality: int = AAC_VBR_QUALITY
    ffmpeg_aac_bitrate: str = FFMPEG_AAC_BITRATE

    # Run behavior
    command_timeout: Optional[float] = None
    dry_run: bool = False
    leave_original_on_remux_kept: bool = False

    @property
    def x265_params(self) -> str:
        """The `-x265-params` value."""
        return (
            f"profile={self.x265_profile}:"
            f"no-sao={self.no_sao}:"
            f"selective-sao={self.selective_sao}"
        )

    @classmethod
    def defaults(cls, scan_root: Path, **overrides: Any) -> "ShrinkerSettings":
        """Settings with every persisted path placed under `scan_root`."""
        root = Path(scan_root).resolve()
        settings = cls(
            scan_root=root,
            db_file=root / DEFAULT_DB_FILE,
            trash_dir=root / DEFAULT_TRASH_DIR,
            error_log=root / DEFAULT_ERROR_LOG,
        )
        return replace(settings, **overrides) if overrides else settings

    @classmethod
    def build(cls, args: Any, user_config: Optional[dict] = None) -> "ShrinkerSettings":
        """
        Merges defaults, the user YAML mapping and the parsed CLI arguments.

        Relative paths from the YAML file are resolved against the scan root; paths
        given on the command line are resolved against the current directory.

        Args:
            args: The `argparse.Namespace` from `cli.get_args`.
            user_config: The mapping returned by `common.load_user_config`.

        Raises:
            ValueError: If a value has the wrong type or is out of range.
        """
        user_config = user_config or {}
        _warn_unknown_keys(user_config)

        target_dir = getattr(args, "target_dir", None)
        scan_root = Path(target_dir).resolve() if target_dir else Path.cwd().resolve()
        settings = cls.defaults(scan_root)

        paths_cfg = _section(user_config, "paths")
        ledger_cfg = _section(user_config, "ledger")
        video_cfg = _section(user_config, "video")
        audio_cfg = _section(user_config, "audio")
        run_cfg = _section(user_config, "run")

        overrides: dict = {}

        # --- Tools ---
        ffmpeg_dir = paths_cfg.get("ffmpeg_dir")
        if ffmpeg_dir:
            exe_suffix = ".exe" if sys.platform == "win32" else ""
            overrides["ffmpeg_bin"] = str(Path(ffmpeg_dir) / f"ffmpeg{exe_suffix}")
            overrides["ffprobe_bin"] = str(Path(ffmpeg_dir) / f"ffprobe{exe_suffix}")
        if paths_cfg.get("qaac"):
            overrides["qaac_bin"] = str(paths_cfg["qaac"])

        # --- Persisted state ---
        for key in ("db_file", "trash_dir", "error_log"):
            if ledger_cfg.get(key):
                overrides[key] = _under_root(scan_root, ledger_cfg[key])

        # --- Quality policy ---
        if "crf" in video_cfg:
            overrides["crf"] = int(video_cfg["crf"])
        if "profile" in video_cfg:
            overrides["x265_profile"] = str(video_cfg["profile"])
        if "denoise_level" in video_cfg:
            overrides["denoise_level"] = int(video_cfg["denoise_level"])
        if "max_height" in video_cfg:
            overrides["max_height"] = int(video_cfg["max_height"])
        if "frame_halving_threshold" in video_cfg:
            overrides["frame_halving_threshold"] = float(video_cfg["frame_halving_threshold"])
        if "encoder" in audio_cfg:
            overrides["aac_encoder"] = str(audio_cfg["encoder"]).lower()
        if "vbr_quality" in audio_cfg:
            overrides["aac_vbr_quality"] = int(audio_cfg["vbr_quality"])
        if run_cfg.get("command_timeout") is not None:
            overrides["command_timeout"] = float(run_cfg["command_timeout"])

        # --- CLI flags win ---
        for attr, key in (("db_file", "db_file"), ("trash_dir", "trash_dir"), ("error_log", "error_log")):
            value = getattr(args, attr, None)
            if value:
                overrides[key] = Path(value).resolve()
        if getattr(args, "crf", None) is not None:
            overrides["crf"] = int(args.crf)
        if getattr(args, "timeout", None) is not None:
            overrides["command_timeout"] = float(args.timeout)
        if getattr(args, "dry_run", False):
            overrides["dry_run"] = True
        if getattr(args, "leave_original_on_remux_kept", False):
            overrides["leave_original_on_remux_kept"] = True

        settings = replace(settings, **overrides)
        settings.validate()
        return settings

    def validate(self):
        """Rejects values the encoders cannot work with."""
        if not 0 <= self.crf <= 51:
            raise ValueError(f"crf must be between 0 and 51, got {self.crf}")
        if self.max_height <= 0 or self.max_height % 2:
            raise ValueError(f"max_height must be a positive even number, got {self.max_height}")
        if self.frame_halving_threshold <= 0:
            raise ValueError(
                f"frame_halving_threshold must be positive, got {self.frame_halving_threshold}"
            )
        if self.aac_encoder not in AAC_ENCODERS:
            raise ValueError(f"audio encoder must be one of {AAC_ENCODERS}, got '{self.aac_encoder}'")
        if self.command_timeout is not None and self.command_timeout <= 0:
            raise ValueError(f"command timeout must be positive, got {self.command_timeout}")
        try:
            self.trash_dir.relative_to(self.scan_root)
        except ValueError:
            logger.debug(f"Holding directory {self.trash_dir} lies outside the scan root {self.scan_root}.")


def _under_root(scan_root: Path, value: Any) -> Path:
    path = Path(value)
    return path if path.is_absolute() else (scan_root / path).resolve()


def _section(user_config: dict, name: str) -> dict:
    values = user_config.get(name)
    return values if isinstance(values, dict) else {}


def _warn_unknown_keys(user_config: dict):
    for section, values in user_config.items():
        known = _KNOWN_USER_KEYS.get(section)
        if known is None:
            logger.warning(f"Unknown section '{section}' in user config. Ignoring it.")
            continue
        if not isinstance(values, dict):
            logger.warning(f"Section '{section}' in user config is not a mapping. Ignoring it.")
            continue
        for key in values:
            if key not in known:
                logger.warning(f"Unknown key '{section}.{key}' in user config. Ignoring it.")
