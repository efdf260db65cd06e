"""
This module defines the AudioEncoder, which produces the audio elementary stream of
the new container from the source's first audio stream.
"""

from pathlib import Path
from typing import List

from loguru import logger

from ..config.audio import AAC_ENCODER_QAAC, WAV_CODEC
from ..domain.exceptions import TranscodeFailure
from ..domain.media import DiscoveredFile
from .encoder_base import Encoder

_STAGE = "audio"


class AudioEncoder(Encoder):
    """
    Copies an existing AAC stream or encodes the first audio stream to AAC.

    The qaac backend needs two steps: ffmpeg decodes to a 16-bit PCM WAV, then qaac
    encodes that WAV in true-VBR mode. The WAV path is supplied by the caller so it
    is covered by the WorkUnit's temp cleanup. The ffmpeg backend encodes directly
    with ffmpeg's native AAC encoder.
    """

    def _input_part(self, source: DiscoveredFile, combined_stream_load: bool) -> List[str]:
        if combined_stream_load:
            return ["-fflags", "+genpts", "-i", str(source.path)]
        return ["-i", str(source.path), "-map", "0:a:0"]

    def build_copy_command(self, source: DiscoveredFile, output: Path, combined_stream_load: bool = False) -> List[str]:
        cmd_list = self._ffmpeg_head()
        cmd_list.extend(self._input_part(source, combined_stream_load))
        cmd_list.extend(["-vn", "-sn", "-dn", "-c:a", "copy", str(output)])
        return cmd_list

    def build_wav_command(self, source: DiscoveredFile, wav_output: Path, combined_stream_load: bool = False) -> List[str]:
        cmd_list = self._ffmpeg_head()
        cmd_list.extend(self._input_part(source, combined_stream_load))
        cmd_list.extend(["-vn", "-sn", "-dn", "-c:a", WAV_CODEC, str(wav_output)])
        return cmd_list

    def build_qaac_command(self, wav_input: Path, output: Path) -> List[str]:
        return [
            self.settings.qaac_bin,
            "--silent",
            "-V", str(self.settings.aac_vbr_quality),
            "-o", str(output),
            str(wav_input),
        ]

    def build_ffmpeg_aac_command(self, source: DiscoveredFile, output: Path, combined_stream_load: bool = False) -> List[str]:
        cmd_list = self._ffmpeg_head()
        cmd_list.extend(self._input_part(source, combined_stream_load))
        cmd_list.extend(["-vn", "-sn", "-dn", "-c:a", "aac", "-b:a", self.settings.ffmpeg_aac_bitrate])
        cmd_list.append(str(output))
        return cmd_list

    def extract_copy(self, source: DiscoveredFile, output: Path, combined_stream_load: bool = False) -> Path:
        """
        Copies the existing AAC stream.

        Raises:
            TranscodeFailure: With stage "audio".
        """
        logger.info("  Copying existing AAC audio stream")
        return self._run(
            self.build_copy_command(source, output, combined_stream_load),
            source.path,
            output,
            TranscodeFailure,
            _STAGE,
        )

    def transcode(
        self,
        source: DiscoveredFile,
        output: Path,
        scratch_wav: Path,
        combined_stream_load: bool = False,
    ) -> Path:
        """
        Encodes the first audio stream to AAC with the configured backend.

        Raises:
            TranscodeFailure: With stage "audio".
        """
        if self.settings.aac_encoder == AAC_ENCODER_QAAC:
            logger.info(f"  Encoding audio with qaac (-V {self.settings.aac_vbr_quality})")
            self._run(
                self.build_wav_command(source, scratch_wav, combined_stream_load),
                source.path,
                scratch_wav,
                TranscodeFailure,
                _STAGE,
            )
            self._run(
                self.build_qaac_command(scratch_wav, output),
                source.path,
                output,
                TranscodeFailure,
                _STAGE,
            )
            # The WAV can be many times the size of the source; drop it right away.
            scratch_wav.unlink(missing_ok=True)
            return output

        logger.info(f"  Encoding audio with ffmpeg aac ({self.settings.ffmpeg_aac_bitrate})")
        return self._run(
            self.build_ffmpeg_aac_command(source, output, combined_stream_load),
            source.path,
            output,
            TranscodeFailure,
            _STAGE,
        )
