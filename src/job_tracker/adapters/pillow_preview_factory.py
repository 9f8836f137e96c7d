"""Thumbnail previews for pending photos."""

import io
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from PIL import Image, ImageOps

from job_tracker.domain.uploads import PhotoFile, PreviewHandle
from job_tracker.services.photos import PreviewFactory

logger = logging.getLogger(__name__)


@dataclass
class PillowPreviewFactory(PreviewFactory):
    """Writes JPEG thumbnails into a private temp directory."""

    directory: Path
    max_size: int = 400

    @classmethod
    def create_temporary(cls, max_size: int = 400) -> "PillowPreviewFactory":
        """Create a factory backed by a fresh temp directory."""
        directory = Path(tempfile.mkdtemp(prefix="job-previews-"))
        return cls(directory=directory, max_size=max_size)

    def create(self, file: PhotoFile) -> PreviewHandle:
        """Render a thumbnail; undecodable images get a handle without a path."""
        try:
            with Image.open(io.BytesIO(file.data)) as image:
                thumb = ImageOps.exif_transpose(image) or image
                thumb = thumb.copy()
        except (OSError, ValueError) as exc:
            logger.info("No preview for %s: %s", file.name, exc)
            return PreviewHandle(path=None)
        thumb.thumbnail((self.max_size, self.max_size))
        if thumb.mode not in ("RGB", "L"):
            thumb = thumb.convert("RGB")
        path = self.directory / f"{uuid4().hex}.jpg"
        thumb.save(path, "JPEG", quality=80)
        return PreviewHandle(path=path)

    def release(self, handle: PreviewHandle) -> None:
        """Delete the thumbnail file."""
        if handle.path is not None:
            handle.path.unlink(missing_ok=True)
        handle.released = True

    def close(self) -> None:
        """Remove the temp directory and anything left in it."""
        shutil.rmtree(self.directory, ignore_errors=True)
