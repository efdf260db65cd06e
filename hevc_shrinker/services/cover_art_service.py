"""
Locates a cover image to attach to the new container.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

from ..domain.media import DiscoveredFile

COVER_EXTENSIONS = (".jpg", ".png", ".webp")
COVER_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


@dataclass(frozen=True)
class CoverArt:
    path: Path
    mime_type: str

    @property
    def attachment_name(self) -> str:
        """Name the image gets inside the container, e.g. `cover.jpg`."""
        return f"cover{self.path.suffix.lower()}"


def find_cover_art(source: DiscoveredFile) -> Optional[CoverArt]:
    """
    First existing image in this order, each tried as jpg, png, webp:
    `poster.*` in the directory, `<stem>-poster.*`, `<stem>.*`.
    """
    # Name outranks extension: `poster.webp` beats `<stem>-poster.jpg`.
    for base in ("poster", f"{source.stem}-poster", source.stem):
        for ext in COVER_EXTENSIONS:
            candidate = source.directory / f"{base}{ext}"
            if candidate.is_file():
                logger.debug(f"Found cover image: {candidate.name}")
                return CoverArt(path=candidate, mime_type=COVER_MIME_TYPES[ext])
    return None
