"""Zip packaging of converted outputs."""
import logging
import time
import zipfile
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Optional, Sequence

from imgbatch.conversion.models import ConvertedImage, TargetFormat

logger = logging.getLogger("imgbatch.archive")


@dataclass
class Archive:
    filename: str
    data: bytes
    entries: list[str]

    @property
    def size(self) -> int:
        return len(self.data)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def entry_name(index: int, target_format: "TargetFormat | str") -> str:
    """Archive name of the output at 0-based index."""
    ext = TargetFormat.parse(target_format).value
    return f"converted_{index + 1}.{ext}"


def build_archive(
    outputs: Sequence["ConvertedImage | bytes"],
    target_format: "TargetFormat | str",
    clock: Callable[[], int] = _epoch_millis,
) -> Optional[Archive]:
    """Zip outputs as converted_<n>.<format>. Returns None when there is nothing to download."""
    if not outputs:
        return None
    buf = BytesIO()
    entries: list[str] = []
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for i, out in enumerate(outputs):
            name = entry_name(i, target_format)
            zf.writestr(name, out.data if isinstance(out, ConvertedImage) else out)
            entries.append(name)
    archive = Archive(filename=f"converted_images_{clock()}.zip", data=buf.getvalue(), entries=entries)
    logger.info("Created zip %s with %s entries (%s bytes)", archive.filename, len(entries), archive.size)
    return archive
