"""
Decision types produced by the decision engine.

These are closed enumerations and frozen dataclasses so a plan can only express
states the replacement protocol knows how to execute.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from ..config.video import EXTENSION_POLICIES


class Verdict(Enum):
    """Top-level classification of a discovered file."""

    SKIP = "skip"  # Already in the ledger.
    KEEP_AS_IS = "keep_as_is"  # HEVC/AAC within limits, already MKV.
    REMUX_ONLY = "remux_only"  # HEVC/AAC within limits, other container.
    TRANSCODE = "transcode"


class VideoAction(Enum):
    COPY_EXISTING = "copy"
    TRANSCODE_TO_HEVC = "libx265"


class AudioAction(Enum):
    COPY_EXISTING = "copy"
    TRANSCODE_TO_AAC = "aac"
    NO_AUDIO = "none"


@dataclass(frozen=True)
class ExtensionPolicy:
    """How a source container has to be handled."""

    combined_stream_load: bool = False
    always_keep_new_encode: bool = False

    @classmethod
    def for_extension(cls, extension: str) -> "ExtensionPolicy":
        ext = extension.lower()
        if not ext.startswith("."):
            ext = f".{ext}"
        return cls(**EXTENSION_POLICIES.get(ext, {}))


@dataclass(frozen=True)
class EncodingPlan:
    """
    How to rebuild a file that got the TRANSCODE verdict.

    Attributes:
        video_action: Copy the HEVC stream or re-encode to HEVC.
        audio_action: Copy the AAC stream, re-encode to AAC, or nothing (no audio stream).
        resize_to: (width, height) when the source is taller than the ceiling.
        halve_frame_rate: Keep every other frame.
        combined_stream_load: Load audio and video together (see ExtensionPolicy).
        always_keep_new_encode: Skip the size comparison (see ExtensionPolicy).
    """

    video_action: VideoAction
    audio_action: AudioAction
    resize_to: Optional[Tuple[int, int]] = None
    halve_frame_rate: bool = False
    combined_stream_load: bool = False
    always_keep_new_encode: bool = False
    container_extension: str = ".mkv"

    def __post_init__(self):
        if self.video_action is VideoAction.COPY_EXISTING and (
            self.resize_to is not None or self.halve_frame_rate
        ):
            raise ValueError("A copied video stream cannot be resized or decimated.")

    def describe(self) -> str:
        parts = [f"video={self.video_action.value}", f"audio={self.audio_action.value}"]
        if self.resize_to:
            parts.append(f"resize={self.resize_to[0]}x{self.resize_to[1]}")
        if self.halve_frame_rate:
            parts.append("halve-fps")
        if self.combined_stream_load:
            parts.append("combined-load")
        if self.always_keep_new_encode:
            parts.append("keep-new")
        return ", ".join(parts)


@dataclass(frozen=True)
class Decision:
    """Verdict plus, for TRANSCODE, the plan."""

    verdict: Verdict
    plan: Optional[EncodingPlan] = None
    reason: str = ""
