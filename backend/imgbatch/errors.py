"""Exceptions raised by the collector, converter and workspace."""
from typing import Optional


class ImgBatchError(Exception):
    """Base class for all errors scoped to a single user action."""


class EmptyWorkspaceError(ImgBatchError):
    """Action requested while its input list (or URL text) is empty."""


class UnsupportedFormatError(ImgBatchError, ValueError):
    """Target format is not one of png, jpeg, webp."""


class FetchError(ImgBatchError):
    """A remote image could not be fetched or was not an image."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class UrlBatchError(ImgBatchError):
    """At least one URL of a URL-list batch failed; nothing was added."""

    def __init__(self, failures: list[FetchError]):
        self.failures = failures
        urls = ", ".join(f.url for f in failures)
        super().__init__(f"Failed to add {len(failures)} URL(s): {urls}")


class DecodeError(ImgBatchError):
    """A pending payload could not be decoded (or timed out)."""

    def __init__(self, name: str, reason: str, index: Optional[int] = None):
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason
        self.index = index


class ConversionFailedError(ImgBatchError):
    """One or more items of a convert-all run failed; no outputs were kept."""

    def __init__(self, failures: list[DecodeError]):
        self.failures = failures
        super().__init__(
            "Conversion failed for " + ", ".join(f"#{f.index} {f.name}" for f in failures)
        )
