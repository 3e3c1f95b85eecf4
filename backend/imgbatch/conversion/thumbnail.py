"""Small previews for the pending list."""
import logging
from io import BytesIO
from typing import Optional

from PIL import Image

from imgbatch.config import THUMBNAIL_SIZE

logger = logging.getLogger("imgbatch.thumbnail")


def fit_within(img: Image.Image, box: int) -> Image.Image:
    """
    Scale image down to fit a box x box square, maintaining aspect ratio.
    Images already inside the box are returned as a copy, never upscaled.
    """
    w, h = img.size
    if w <= box and h <= box:
        return img.copy()
    scale = min(box / w, box / h)
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    return img.resize((new_w, new_h), Image.Resampling.LANCZOS)


def make_thumbnail(data: bytes, size: Optional[int] = None) -> bytes:
    """Decode payload and return a PNG preview no larger than size x size."""
    box = size or THUMBNAIL_SIZE
    with Image.open(BytesIO(data)) as img:
        img.load()
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        thumb = fit_within(img, box)
    out = BytesIO()
    thumb.save(out, format="PNG")
    logger.debug("Thumbnail %sx%s built", thumb.width, thumb.height)
    return out.getvalue()
