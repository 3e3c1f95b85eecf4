"""Input collection: picker, drop and URL-list acquisition into one pending list."""
import asyncio
import logging
from typing import Iterable, Optional, Sequence

from imgbatch.conversion.models import PendingImage, is_image_type
from imgbatch.errors import EmptyWorkspaceError, FetchError, UrlBatchError
from imgbatch.fetch import RemoteFetcher
from imgbatch.workspace import Workspace

logger = logging.getLogger("imgbatch.collector")


def parse_uri_list(text: str) -> list[str]:
    """Parse a text/uri-list payload: one URI per line, '#' lines are comments."""
    uris = []
    for line in (text or "").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            uris.append(line)
    return uris


def parse_url_text(text: str) -> list[str]:
    return [u.strip() for u in (text or "").split("\n") if u.strip()]


def only_images(items: Iterable[PendingImage]) -> list[PendingImage]:
    kept = []
    for item in items:
        if is_image_type(item.content_type):
            kept.append(item)
        else:
            logger.debug("Skipping non-image %s (%s)", item.name, item.content_type)
    return kept


class InputCollector:
    """Appends acquired images to a workspace's pending list with whole-list updates."""

    def __init__(self, workspace: Workspace, fetcher: RemoteFetcher):
        self.workspace = workspace
        self.fetcher = fetcher

    def _commit(self, items: Sequence[PendingImage]) -> list[PendingImage]:
        if items:
            self.workspace.pending = [*self.workspace.pending, *items]
            logger.info("Session %s: added %s image(s), %s pending", self.workspace.session_id[:8], len(items), len(self.workspace.pending))
        return list(items)

    def add_from_picker(self, selection: Iterable[PendingImage]) -> list[PendingImage]:
        """Keep image-typed entries of a file selection, in selection order."""
        return self._commit(only_images(selection))

    async def add_from_drop(
        self,
        files: Iterable[PendingImage] = (),
        uri_lists: Iterable[str] = (),
    ) -> list[PendingImage]:
        """Add dropped files and dropped URIs. A failing URI is skipped, the rest still land."""
        dropped = only_images(files)
        uris = [u for text in uri_lists for u in parse_uri_list(text)]
        results = await asyncio.gather(*(self.fetcher.fetch(u) for u in uris), return_exceptions=True)
        resolved: list[PendingImage] = []
        for uri, r in zip(uris, results):
            if isinstance(r, FetchError):
                logger.warning("Failed to fetch dropped image %s: %s", uri, r.reason)
            elif isinstance(r, BaseException):
                raise r
            else:
                resolved.append(r)
        return self._commit([*dropped, *resolved])

    async def add_from_url_list(self, text: Optional[str] = None) -> list[PendingImage]:
        """Fetch every URL of a newline-separated list. Any failure aborts the whole batch."""
        if text is None:
            text = self.workspace.url_text
        urls = parse_url_text(text)
        if not urls:
            raise EmptyWorkspaceError("No URLs to add")
        results = await asyncio.gather(*(self.fetcher.fetch(u) for u in urls), return_exceptions=True)
        failures: list[FetchError] = []
        for r in results:
            if isinstance(r, FetchError):
                failures.append(r)
            elif isinstance(r, BaseException):
                raise r
        if failures:
            self.workspace.url_text = text
            logger.warning("URL batch rejected: %s of %s failed", len(failures), len(urls))
            raise UrlBatchError(failures)
        added = self._commit(results)
        self.workspace.url_text = ""
        return added

    def remove_item(self, index: int) -> PendingImage:
        """Remove a pending item; trims the converted list too when both have equal length."""
        ws = self.workspace
        if not 0 <= index < len(ws.pending):
            raise IndexError(f"No pending item at index {index}")
        removed = ws.pending[index]
        if len(ws.converted) == len(ws.pending):
            ws.converted = [c for i, c in enumerate(ws.converted) if i != index]
        ws.pending = [p for i, p in enumerate(ws.pending) if i != index]
        logger.info("Session %s: removed %s", ws.session_id[:8], removed.name)
        return removed

    def clear(self) -> None:
        self.workspace.pending = []
        self.workspace.converted = []
