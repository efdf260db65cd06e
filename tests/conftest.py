"""Shared fixtures: sandboxed settings, a ledger, and an in-memory media engine."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from hevc_shrinker.config.settings import ShrinkerSettings
from hevc_shrinker.domain.exceptions import MuxFailure, ProbeFailure, RemuxFailure, TranscodeFailure
from hevc_shrinker.domain.media import Codec, MediaProfile, file_fingerprint
from hevc_shrinker.services.ledger_service import ProcessedFileLedger


def make_profile(
    video: str = "h264",
    audio: Optional[str] = "mp3",
    width: int = 1920,
    height: int = 1080,
    fps: float = 23.98,
) -> MediaProfile:
    return MediaProfile(
        video_codec=Codec.from_name(video),
        audio_codec=Codec.from_name(audio),
        width=width,
        height=height,
        frame_rate=fps,
        video_codec_name=video,
        audio_codec_name=audio or "",
    )


HEVC_AAC_1080 = make_profile("hevc", "aac", 1920, 1080, 24.0)
H264_MP3_1080 = make_profile("h264", "mp3", 1920, 1080, 23.98)


class FakeEngine:
    """
    Stands in for ffmpeg/ffprobe/qaac.

    Outputs are plain files of a chosen size. `new_sizes` sets the muxed new
    encode size per source name; `remux_sizes` the remux size (default: the
    source's size). `fail` maps a source name to the stage that should fail.
    """

    def __init__(
        self,
        profiles: Optional[Dict[str, MediaProfile]] = None,
        new_sizes: Optional[Dict[str, int]] = None,
        remux_sizes: Optional[Dict[str, int]] = None,
        fail: Optional[Dict[str, str]] = None,
        default_profile: MediaProfile = H264_MP3_1080,
    ):
        self.profiles = profiles or {}
        self.new_sizes = new_sizes or {}
        self.remux_sizes = remux_sizes or {}
        self.fail = fail or {}
        self.default_profile = default_profile
        self.calls: List[Tuple[str, str]] = []
        self.mux_covers = []

    def _should_fail(self, name: str, stage: str) -> bool:
        return self.fail.get(name) == stage

    @staticmethod
    def _write(path: Path, size: int, fill: bytes = b"x"):
        path.write_bytes(fill * size)
        return path

    def probe(self, path: Path) -> MediaProfile:
        self.calls.append(("probe", path.name))
        if self._should_fail(path.name, "probe"):
            raise ProbeFailure(f"ffprobe failed for {path}")
        return self.profiles.get(path.name, self.default_profile)

    def transcode_video(self, source, plan, output: Path) -> Path:
        self.calls.append(("transcode_video", source.path.name))
        if self._should_fail(source.path.name, "video"):
            # A half-written output, like a crashed encoder leaves behind.
            self._write(output, 3)
            raise TranscodeFailure("x265 exited with code 1", "video")
        return self._write(output, 10, b"v")

    def extract_video(self, source, output: Path, combined_stream_load: bool = False) -> Path:
        self.calls.append(("extract_video", source.path.name))
        if self._should_fail(source.path.name, "video"):
            raise TranscodeFailure("copy failed", "video")
        return self._write(output, 10, b"v")

    def transcode_audio(self, source, output: Path, scratch_wav: Path, combined_stream_load: bool = False) -> Path:
        self.calls.append(("transcode_audio", source.path.name))
        self._write(scratch_wav, 50, b"w")
        if self._should_fail(source.path.name, "audio"):
            raise TranscodeFailure("qaac exited with code 2", "audio")
        return self._write(output, 5, b"a")

    def extract_audio(self, source, output: Path, combined_stream_load: bool = False) -> Path:
        self.calls.append(("extract_audio", source.path.name))
        if self._should_fail(source.path.name, "audio"):
            raise TranscodeFailure("copy failed", "audio")
        return self._write(output, 5, b"a")

    def mux(self, video: Path, audio, output: Path, cover=None, source: Optional[Path] = None) -> Path:
        name = source.name if source else video.name
        self.calls.append(("mux", name))
        self.mux_covers.append(cover)
        if self._should_fail(name, "mux"):
            self._write(output, 2)
            raise MuxFailure("mux failed")
        return self._write(output, self.new_sizes.get(name, 100), b"n")

    def remux(self, source: Path, output: Path) -> Path:
        self.calls.append(("remux", source.name))
        if self._should_fail(source.name, "remux"):
            raise RemuxFailure("remux failed")
        size = self.remux_sizes.get(source.name, source.stat().st_size)
        return self._write(output, size, b"r")

    def fingerprint(self, path: Path) -> str:
        return file_fingerprint(path)

    def ops(self, op: str) -> List[str]:
        return [name for called, name in self.calls if called == op]


@pytest.fixture
def settings(tmp_path) -> ShrinkerSettings:
    return ShrinkerSettings.defaults(tmp_path)


@pytest.fixture
def ledger(settings) -> ProcessedFileLedger:
    return ProcessedFileLedger(settings.db_file)


def write_source(directory: Path, name: str, size: int = 1000) -> Path:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"s" * size)
    return path


def temp_leftovers(root: Path) -> List[Path]:
    return [p for p in root.rglob("*") if ".shrink-" in p.name]
