import hashlib
import re
import subprocess
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from pathlib import Path
from pprint import pformat
from typing import Optional

import ffmpeg
from loguru import logger

from .exceptions import ProbeFailure
from ..config.common import TEMP_MARKER
from ..config.video import TARGET_CONTAINER_EXTENSION


def parse_duration(duration_str: str) -> float:
    """
    Parses a duration string into total seconds.

    Handles the two formats ffprobe emits: plain seconds ("3600.5") and a timecode
    ("01:00:00.500", hours optional).

    Returns:
        The total duration in seconds, or 0.0 if parsing fails.
    """
    try:
        return float(duration_str)
    except (TypeError, ValueError):
        pattern = r"(?:(\d{1,2}):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)"
        match = re.fullmatch(pattern, str(duration_str))
        if match:
            hours_str, minutes_str, seconds_str = match.groups()
            hours = int(hours_str) if hours_str else 0
            minutes = int(minutes_str)
            seconds = float(seconds_str)
            return float(hours * 3600 + minutes * 60 + seconds)
        logger.warning(f"Could not parse duration string: {duration_str}")
    return 0.0


def parse_frame_rate(rate_str: Optional[str]) -> float:
    """
    Converts an ffprobe rational such as "30000/1001" to a decimal rounded to 2 places.

    A zero denominator, an empty value or anything unparsable yields 0.0, which the
    decision engine reads as "not a high frame rate".
    """
    if not rate_str:
        return 0.0
    try:
        _, _, denominator = str(rate_str).partition("/")
        if denominator and int(denominator) == 0:
            return 0.0
        rate = float(Fraction(str(rate_str).strip()))
    except (ValueError, ZeroDivisionError):
        logger.warning(f"Could not parse frame rate '{rate_str}'. Treating it as 0.")
        return 0.0
    return round(rate, 2) if rate > 0 else 0.0


def file_fingerprint(path: Path) -> str:
    """SHA-1 hex digest of the file's bytes."""
    with Path(path).open(mode="rb") as f:
        return hashlib.file_digest(f, "sha1").hexdigest()


class Codec(Enum):
    """Normalized codec identity. Probe results never leave this module as strings."""

    HEVC = "hevc"
    AAC = "aac"
    OTHER = "other"
    NONE = "none"

    @classmethod
    def from_name(cls, codec_name: Optional[str]) -> "Codec":
        name = (codec_name or "").strip().lower()
        if not name:
            return cls.NONE
        if name in ("hevc", "h265"):
            return cls.HEVC
        if name == "aac":
            return cls.AAC
        return cls.OTHER


@dataclass(frozen=True)
class DiscoveredFile:
    """
    A video file found below the scan root.

    Attributes:
        path: Absolute path of the file.
        directory: The containing directory.
        stem: Base name without the extension.
        extension: Lower-cased extension including the dot (e.g. ".mp4").
    """

    path: Path
    directory: Path
    stem: str
    extension: str

    @classmethod
    def from_path(cls, path: Path) -> "DiscoveredFile":
        resolved = Path(path).resolve()
        return cls(
            path=resolved,
            directory=resolved.parent,
            stem=resolved.stem,
            extension=resolved.suffix.lower(),
        )

    @property
    def final_path(self) -> Path:
        """Where the kept output always lives: `<dir>/<stem>.mkv`."""
        return self.directory / f"{self.stem}{TARGET_CONTAINER_EXTENSION}"

    @property
    def is_mkv(self) -> bool:
        return self.extension == TARGET_CONTAINER_EXTENSION

    def temp_path(self, suffix: str) -> Path:
        """A temp artifact next to the source, e.g. `<dir>/<stem>.shrink-video.mkv`."""
        if TEMP_MARKER not in suffix:
            raise ValueError(f"Temp suffix '{suffix}' lacks the '{TEMP_MARKER}' marker.")
        return self.directory / f"{self.stem}{suffix}"


@dataclass(frozen=True)
class MediaProfile:
    """
    Probed facts about a file's first video and first audio stream.

    Missing width/height are stored as 0; an unparsable frame rate as 0.0.
    """

    video_codec: Codec
    audio_codec: Codec
    width: int
    height: int
    frame_rate: float
    duration: float = 0.0
    video_codec_name: str = ""
    audio_codec_name: str = ""

    @property
    def has_audio(self) -> bool:
        return self.audio_codec is not Codec.NONE

    @property
    def is_target_codec(self) -> bool:
        return self.video_codec is Codec.HEVC and self.audio_codec is Codec.AAC

    def needs_downscale(self, max_height: int) -> bool:
        return self.height > max_height

    def needs_frame_halving(self, threshold: float) -> bool:
        return self.frame_rate >= threshold

    def describe(self) -> str:
        audio = self.audio_codec_name or "no audio"
        return (
            f"{self.video_codec_name or '?'}/{audio} "
            f"{self.width}x{self.height} @ {self.frame_rate:g} fps"
        )

    @classmethod
    def from_probe(cls, probe: dict, source: Path | str = "") -> "MediaProfile":
        """
        Builds a profile from the raw `ffmpeg.probe` dictionary.

        Raises:
            ProbeFailure: If the probe output contains no video stream.
        """
        streams = probe.get("streams", []) if probe else []
        video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
        audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)

        if video_stream is None:
            raise ProbeFailure(f"No video stream found in {source}")

        video_codec_name = str(video_stream.get("codec_name", "")).lower()
        if not video_codec_name:
            raise ProbeFailure(f"Video codec could not be determined for {source}")
        audio_codec_name = str(audio_stream.get("codec_name", "")).lower() if audio_stream else ""

        width = _as_int(video_stream.get("width"), "width", source)
        height = _as_int(video_stream.get("height"), "height", source)

        duration_val = (probe.get("format") or {}).get("duration") or video_stream.get("duration")
        duration = parse_duration(str(duration_val)) if duration_val is not None else 0.0

        return cls(
            video_codec=Codec.from_name(video_codec_name),
            audio_codec=Codec.from_name(audio_codec_name),
            width=width,
            height=height,
            frame_rate=parse_frame_rate(video_stream.get("avg_frame_rate")),
            duration=duration,
            video_codec_name=video_codec_name,
            audio_codec_name=audio_codec_name,
        )


def _as_int(value, name: str, source) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Probe reported no usable {name} for {source} ({value!r}). Treating it as 0.")
        return 0


def probe_media(path: Path, ffprobe_bin: str = "ffprobe", timeout: Optional[float] = None) -> MediaProfile:
    """
    Probes a media file with ffprobe (through ffmpeg-python) and normalizes the result.

    Raises:
        ProbeFailure: If ffprobe fails, times out, cannot be started, or reports no video.
    """
    try:
        probe = ffmpeg.probe(str(path), cmd=ffprobe_bin, timeout=timeout)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
        raise ProbeFailure(f"ffprobe failed for {path}: {(stderr or '').strip()}") from e
    except subprocess.TimeoutExpired as e:
        raise ProbeFailure(f"ffprobe timed out after {timeout}s for {path}") from e
    except FileNotFoundError as e:
        raise ProbeFailure(f"ffprobe executable '{ffprobe_bin}' not found") from e

    logger.trace(f"Probe data for {Path(path).name}:\n{pformat(probe)}")
    return MediaProfile.from_probe(probe, source=path)
