"""
This module defines the VideoEncoder, which produces the video elementary stream
of the new container: either a lossless copy of an existing HEVC stream or a fresh
libx265 encode with the configured quality policy.
"""

from pathlib import Path
from typing import List

from loguru import logger

from ..config.video import HEVC_ENCODER, HEVC_PIXEL_FORMAT, RESIZE_FLAGS
from ..domain.exceptions import TranscodeFailure
from ..domain.media import DiscoveredFile
from ..domain.plan import EncodingPlan
from .encoder_base import Encoder

_STAGE = "video"


class VideoEncoder(Encoder):
    """
    Writes a video-only MKV next to the source.

    Sources whose extension policy requires a combined stream load are read as one
    unit: timestamps are regenerated on input, no stream is addressed explicitly,
    and the output is forced to a constant frame rate. Addressing the video stream
    of these containers on its own desynchronizes it from the audio.
    """

    def _input_part(self, source: DiscoveredFile, combined_stream_load: bool) -> List[str]:
        if combined_stream_load:
            return ["-fflags", "+genpts", "-i", str(source.path)]
        return ["-i", str(source.path), "-map", "0:v:0"]

    def build_filter_chain(self, plan: EncodingPlan) -> str:
        """
        The `-vf` value: optional resize, optional frame halving, then denoise.

        E.g. "scale=1920:1080:flags=lanczos,framestep=2,hqdn3d=4".
        """
        filters = []
        if plan.resize_to:
            width, height = plan.resize_to
            filters.append(f"scale={width}:{height}:flags={RESIZE_FLAGS}")
        if plan.halve_frame_rate:
            # Keep every other frame; no interpolation.
            filters.append("framestep=2")
        if self.settings.denoise_level > 0:
            filters.append(f"hqdn3d={self.settings.denoise_level}")
        return ",".join(filters)

    def build_transcode_command(self, source: DiscoveredFile, plan: EncodingPlan, output: Path) -> List[str]:
        cmd_list = self._ffmpeg_head()
        cmd_list.extend(self._input_part(source, plan.combined_stream_load))
        cmd_list.extend(["-an", "-sn", "-dn"])

        filter_chain = self.build_filter_chain(plan)
        if filter_chain:
            cmd_list.extend(["-vf", filter_chain])
        if plan.combined_stream_load:
            cmd_list.extend(["-fps_mode", "cfr"])

        cmd_list.extend(["-pix_fmt", HEVC_PIXEL_FORMAT])
        cmd_list.extend(["-c:v", HEVC_ENCODER, "-crf", str(self.settings.crf)])
        cmd_list.extend(["-x265-params", self.settings.x265_params])
        cmd_list.append(str(output))
        return cmd_list

    def build_extract_command(self, source: DiscoveredFile, output: Path, combined_stream_load: bool = False) -> List[str]:
        cmd_list = self._ffmpeg_head()
        cmd_list.extend(self._input_part(source, combined_stream_load))
        cmd_list.extend(["-an", "-sn", "-dn", "-c:v", "copy", str(output)])
        return cmd_list

    def transcode(self, source: DiscoveredFile, plan: EncodingPlan, output: Path) -> Path:
        """
        Encodes the source's video to HEVC.

        Raises:
            TranscodeFailure: With stage "video".
        """
        logger.info(f"  Encoding video with {HEVC_ENCODER} (crf {self.settings.crf}): {plan.describe()}")
        return self._run(
            self.build_transcode_command(source, plan, output),
            source.path,
            output,
            TranscodeFailure,
            _STAGE,
        )

    def extract_copy(self, source: DiscoveredFile, output: Path, combined_stream_load: bool = False) -> Path:
        """
        Copies the existing HEVC stream without re-encoding.

        Raises:
            TranscodeFailure: With stage "video".
        """
        logger.info("  Copying existing HEVC video stream")
        return self._run(
            self.build_extract_command(source, output, combined_stream_load),
            source.path,
            output,
            TranscodeFailure,
            _STAGE,
        )
