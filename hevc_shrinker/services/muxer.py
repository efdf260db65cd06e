"""
Container assembly: muxing the prepared elementary streams, and lossless rewraps
of a whole file into MKV.
"""
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..domain.exceptions import MuxFailure, RemuxFailure
from .cover_art_service import CoverArt
from .encoder_base import Encoder


class Muxer(Encoder):
    """Builds MKV containers with stream copy only."""

    def build_mux_command(
        self,
        video: Path,
        audio: Optional[Path],
        output: Path,
        cover: Optional[CoverArt] = None,
    ) -> List[str]:
        cmd_list = self._ffmpeg_head()
        cmd_list.extend(["-i", str(video)])
        if audio is not None:
            cmd_list.extend(["-i", str(audio)])
        cmd_list.extend(["-map", "0:v:0"])
        if audio is not None:
            cmd_list.extend(["-map", "1:a:0"])
        cmd_list.extend(["-c", "copy"])
        if cover is not None:
            cmd_list.extend([
                "-attach", str(cover.path),
                "-metadata:s:t", f"mimetype={cover.mime_type}",
                "-metadata:s:t", f"filename={cover.attachment_name}",
            ])
        cmd_list.append(str(output))
        return cmd_list

    def build_remux_command(self, source: Path, output: Path) -> List[str]:
        cmd_list = self._ffmpeg_head()
        # genpts: MPEG program streams often lack presentation timestamps.
        cmd_list.extend(["-fflags", "+genpts", "-i", str(source), "-c", "copy", str(output)])
        return cmd_list

    def mux(
        self,
        video: Path,
        audio: Optional[Path],
        output: Path,
        cover: Optional[CoverArt] = None,
        source: Optional[Path] = None,
    ) -> Path:
        """
        Raises:
            MuxFailure: If the container could not be written.
        """
        extras = []
        if audio is None:
            extras.append("no audio")
        if cover is not None:
            extras.append(f"cover {cover.path.name}")
        logger.info("  Muxing new container" + (f" ({', '.join(extras)})" if extras else ""))
        return self._run(
            self.build_mux_command(video, audio, output, cover),
            source or video,
            output,
            MuxFailure,
        )

    def remux(self, source: Path, output: Path) -> Path:
        """
        Rewraps every stream of `source` into `output` without re-encoding.

        Raises:
            RemuxFailure: If the rewrap failed.
        """
        return self._run(self.build_remux_command(source, output), source, output, RemuxFailure)
