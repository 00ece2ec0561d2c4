"""
Downstream receivers of the stitched image.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Protocol, Tuple, Union

from PIL import Image

from scrollshot.logging import get_logger

logger = get_logger(__name__)


class StitchSink(Protocol):
    """Receives the final stitched image (e.g. an annotation editor)."""

    def open_image(self, image: Image.Image, width: int, height: int) -> None:
        ...


class FileSink:
    """Writes each stitched image as a PNG file."""

    def __init__(
        self,
        directory: Union[str, Path],
        prefix: str = "scrollshot",
        path: Optional[Union[str, Path]] = None,
    ):
        """
        Args:
            directory: Output directory for timestamped files
            prefix: Filename prefix
            path: Exact output path; overrides directory/prefix
        """
        self.directory = Path(directory).expanduser()
        self.prefix = prefix
        self._path = Path(path).expanduser() if path else None
        self.saved: List[Path] = []

    def _next_path(self) -> Path:
        if self._path is not None:
            return self._path
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        candidate = self.directory / f"{self.prefix}-{stamp}.png"
        counter = 1
        while candidate.exists():
            candidate = self.directory / f"{self.prefix}-{stamp}-{counter}.png"
            counter += 1
        return candidate

    def open_image(self, image: Image.Image, width: int, height: int) -> None:
        path = self._next_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        if image.mode != "RGBA":
            # PNG stores straight alpha
            image = image.convert("RGBA")
        image.save(path, format="PNG")
        self.saved.append(path)
        logger.info("Stitched image saved", path=str(path), width=width, height=height)

    @property
    def last_path(self) -> Optional[Path]:
        return self.saved[-1] if self.saved else None


class MemorySink:
    """Keeps stitched images in memory."""

    def __init__(self):
        self.images: List[Tuple[Image.Image, int, int]] = []

    def open_image(self, image: Image.Image, width: int, height: int) -> None:
        self.images.append((image, width, height))

    @property
    def last(self) -> Optional[Image.Image]:
        return self.images[-1][0] if self.images else None
