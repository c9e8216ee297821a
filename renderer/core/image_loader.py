import base64
import binascii
import io
import logging
import os
from typing import Optional

from PIL import Image

from editor.core.models import CropRect

logger = logging.getLogger(__name__)


class ImageLoader:
    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = base_dir

    def _resolve_path(self, src: str) -> str:
        if self.base_dir and not os.path.isabs(src):
            return os.path.join(self.base_dir, src)
        return src

    def load(self, src: Optional[str]) -> Optional[Image.Image]:
        """Load a data URL or file path. Returns None if it cannot be read."""
        if not src:
            return None
        try:
            if src.startswith("data:"):
                _, _, encoded = src.partition(",")
                return Image.open(io.BytesIO(base64.b64decode(encoded))).convert("RGBA")
            path = self._resolve_path(src)
            if not os.path.exists(path):
                logger.warning("Image not found: %s", path)
                return None
            return Image.open(path).convert("RGBA")
        except (OSError, ValueError, binascii.Error) as exc:
            logger.warning("Could not load image %s: %s", src[:64], exc)
            return None

    @staticmethod
    def crop(image: Image.Image, crop: Optional[CropRect]) -> Image.Image:
        if crop is None:
            return image
        width, height = image.size
        left = int(round(crop.x * width))
        top = int(round(crop.y * height))
        right = max(int(round((crop.x + crop.width) * width)), left + 1)
        bottom = max(int(round((crop.y + crop.height) * height)), top + 1)
        return image.crop((left, top, right, bottom))

    def load_scaled(self, src: Optional[str], width: int, height: int, crop: Optional[CropRect] = None):
        """Load, crop to the normalized window and resize."""
        img = self.load(src)
        if img is None:
            return None
        return self.crop(img, crop).resize((max(width, 1), max(height, 1)), Image.LANCZOS)
