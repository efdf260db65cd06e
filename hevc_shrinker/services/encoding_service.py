"""
The media engine: one object exposing every external media operation the core needs.

The decision engine and the replacement protocol only talk to `MediaEngine`, never
to ffmpeg, ffprobe or qaac directly. Tests substitute an in-memory fake with the
same methods.

Example:
    from hevc_shrinker.services.encoding_service import MediaEngine
"""
from pathlib import Path
from typing import Optional

from ..config.settings import ShrinkerSettings
from ..domain.media import DiscoveredFile, MediaProfile, file_fingerprint, probe_media
from ..domain.plan import EncodingPlan
from .audio_encoder import AudioEncoder
from .cover_art_service import CoverArt
from .encoder_base import Encoder
from .muxer import Muxer
from .video_encoder import VideoEncoder

__all__ = ["AudioEncoder", "Encoder", "MediaEngine", "Muxer", "VideoEncoder"]


class MediaEngine:
    """Facade over the probe, the encoders and the muxer for one run's settings."""

    def __init__(self, settings: ShrinkerSettings):
        self.settings = settings
        self.video_encoder = VideoEncoder(settings)
        self.audio_encoder = AudioEncoder(settings)
        self.muxer = Muxer(settings)

    def probe(self, path: Path) -> MediaProfile:
        return probe_media(path, self.settings.ffprobe_bin, self.settings.command_timeout)

    def transcode_video(self, source: DiscoveredFile, plan: EncodingPlan, output: Path) -> Path:
        return self.video_encoder.transcode(source, plan, output)

    def extract_video(self, source: DiscoveredFile, output: Path, combined_stream_load: bool = False) -> Path:
        return self.video_encoder.extract_copy(source, output, combined_stream_load)

    def transcode_audio(
        self,
        source: DiscoveredFile,
        output: Path,
        scratch_wav: Path,
        combined_stream_load: bool = False,
    ) -> Path:
        return self.audio_encoder.transcode(source, output, scratch_wav, combined_stream_load)

    def extract_audio(self, source: DiscoveredFile, output: Path, combined_stream_load: bool = False) -> Path:
        return self.audio_encoder.extract_copy(source, output, combined_stream_load)

    def mux(
        self,
        video: Path,
        audio: Optional[Path],
        output: Path,
        cover: Optional[CoverArt] = None,
        source: Optional[Path] = None,
    ) -> Path:
        return self.muxer.mux(video, audio, output, cover, source)

    def remux(self, source: Path, output: Path) -> Path:
        return self.muxer.remux(source, output)

    def fingerprint(self, path: Path) -> str:
        return file_fingerprint(path)
