"""Pending/converted image models."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from imgbatch.errors import UnsupportedFormatError


class TargetFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def pil_format(self) -> str:
        return self.value.upper()

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @classmethod
    def parse(cls, value: "str | TargetFormat") -> "TargetFormat":
        if isinstance(value, cls):
            return value
        name = (value or "").strip().lower()
        if name == "jpg":
            name = "jpeg"
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedFormatError(f"Unsupported target format: {value!r}") from None


def is_image_type(content_type: Optional[str]) -> bool:
    return (content_type or "").strip().lower().startswith("image/")


@dataclass(frozen=True)
class PendingImage:
    """An acquired, not-yet-converted image payload."""
    name: str
    content_type: str
    data: bytes
    source_url: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ConvertedImage:
    """Output of converting one PendingImage; positional with the pending list."""
    data: bytes
    target_format: TargetFormat
    source_name: str
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)
