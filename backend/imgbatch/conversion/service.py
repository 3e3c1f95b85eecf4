"""Image conversion service: decode, draw onto a raster surface, re-encode, in parallel."""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from typing import Optional, Sequence

from PIL import Image, UnidentifiedImageError

from imgbatch.config import DECODE_TIMEOUT, MAX_WORKERS
from imgbatch.conversion.models import ConvertedImage, PendingImage, TargetFormat
from imgbatch.errors import ConversionFailedError, DecodeError

logger = logging.getLogger("imgbatch.service")

# JPEG has no alpha channel; transparent pixels end up on this background
JPEG_BACKGROUND = (0, 0, 0)

DECODE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError)


class ConversionService:
    """Converts pending images to a target format with a per-item decode timeout."""

    def __init__(self, max_workers: int = MAX_WORKERS, decode_timeout: Optional[float] = DECODE_TIMEOUT):
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self.decode_timeout = decode_timeout or None
        logger.info(
            "ConversionService initialized with max_workers=%s decode_timeout=%s",
            max_workers, self.decode_timeout,
        )

    @staticmethod
    def render(item: PendingImage, target_format: TargetFormat) -> ConvertedImage:
        """Decode item, draw it on a surface of the same pixel size and encode the surface.

        No scaling and no quality option: the encoder defaults for the format apply.
        """
        with Image.open(BytesIO(item.data)) as img:
            img.load()
            width, height = img.size
            surface = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            surface.alpha_composite(img.convert("RGBA"))

        if target_format is TargetFormat.JPEG:
            flat = Image.new("RGB", (width, height), JPEG_BACKGROUND)
            flat.paste(surface, mask=surface.getchannel("A"))
            surface = flat

        out = BytesIO()
        surface.save(out, format=target_format.pil_format)
        return ConvertedImage(
            data=out.getvalue(),
            target_format=target_format,
            source_name=item.name,
            width=width,
            height=height,
        )

    async def convert_one(self, index: int, item: PendingImage, target_format: TargetFormat) -> ConvertedImage:
        loop = asyncio.get_running_loop()
        started = asyncio.Event()

        def job() -> ConvertedImage:
            loop.call_soon_threadsafe(started.set)
            return self.render(item, target_format)

        future = loop.run_in_executor(self._executor, job)
        # Time spent queued behind other items does not count against the timeout
        waiter = asyncio.ensure_future(started.wait())
        await asyncio.wait({future, waiter}, return_when=asyncio.FIRST_COMPLETED)
        waiter.cancel()
        try:
            result = await asyncio.wait_for(future, timeout=self.decode_timeout)
        except asyncio.TimeoutError:
            logger.warning("Conversion of %s timed out after %ss", item.name, self.decode_timeout)
            raise DecodeError(item.name, f"timed out after {self.decode_timeout}s", index=index)
        except DECODE_ERRORS as e:
            logger.warning("Could not decode %s: %s", item.name, e)
            raise DecodeError(item.name, str(e) or type(e).__name__, index=index) from e
        logger.info("Converted %s -> %s (%sx%s)", item.name, target_format.value, result.width, result.height)
        return result

    async def convert_all(
        self,
        pending: Sequence[PendingImage],
        target_format: "TargetFormat | str",
    ) -> list[ConvertedImage]:
        """Convert every pending item concurrently. Output order matches input order.

        Raises ConversionFailedError if any item fails; no partial result is returned.
        """
        fmt = TargetFormat.parse(target_format)
        results = await asyncio.gather(
            *(self.convert_one(i, item, fmt) for i, item in enumerate(pending)),
            return_exceptions=True,
        )
        failures: list[DecodeError] = []
        for r in results:
            if isinstance(r, DecodeError):
                failures.append(r)
            elif isinstance(r, BaseException):
                raise r
        if failures:
            raise ConversionFailedError(failures)
        logger.info("Converted %s item(s) to %s", len(results), fmt.value)
        return list(results)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service


def shutdown_conversion_service() -> None:
    global _conversion_service
    if _conversion_service is not None:
        _conversion_service.shutdown()
        _conversion_service = None
