"""Per-session workspace: pending list, converted list and target format."""
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional

from imgbatch import archive as archiver
from imgbatch.config import DEFAULT_TARGET_FORMAT, MAX_WORKSPACES, WORKSPACE_IDLE_TTL
from imgbatch.conversion.models import ConvertedImage, PendingImage, TargetFormat
from imgbatch.conversion.service import ConversionService
from imgbatch.errors import EmptyWorkspaceError

logger = logging.getLogger("imgbatch.workspace")


@dataclass
class Workspace:
    session_id: str
    pending: list[PendingImage] = field(default_factory=list)
    converted: list[ConvertedImage] = field(default_factory=list)
    target_format: TargetFormat = field(default_factory=lambda: TargetFormat.parse(DEFAULT_TARGET_FORMAT))
    url_text: str = ""

    @property
    def can_convert(self) -> bool:
        return bool(self.pending)

    @property
    def can_download(self) -> bool:
        return bool(self.converted)

    @property
    def converted_format(self) -> Optional[TargetFormat]:
        """Format the current outputs were encoded with (may differ from target_format)."""
        return self.converted[0].target_format if self.converted else None

    def set_target_format(self, value: "TargetFormat | str") -> TargetFormat:
        self.target_format = TargetFormat.parse(value)
        return self.target_format

    async def convert_all(self, service: ConversionService) -> list[ConvertedImage]:
        """Convert the whole pending list; replaces the converted list only on full success."""
        if not self.pending:
            raise EmptyWorkspaceError("No images to convert")
        snapshot = list(self.pending)
        self.converted = await service.convert_all(snapshot, self.target_format)
        logger.info("Session %s: converted %s image(s) to %s", self.session_id[:8], len(self.converted), self.target_format.value)
        return self.converted

    def build_archive(self, **kwargs) -> Optional[archiver.Archive]:
        if not self.converted:
            return None
        return archiver.build_archive(self.converted, self.converted_format, **kwargs)

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "target_format": self.target_format.value,
            "url_text": self.url_text,
            "items": [
                {
                    "index": i,
                    "name": p.name,
                    "content_type": p.content_type,
                    "size": p.size,
                    "source_url": p.source_url,
                }
                for i, p in enumerate(self.pending)
            ],
            "pending_count": len(self.pending),
            "converted_count": len(self.converted),
            "converted_format": self.converted_format.value if self.converted_format else None,
            "can_convert": self.can_convert,
            "can_download": self.can_download,
        }


class WorkspaceStore:
    """
    In-memory workspaces keyed by session id. Nothing survives a restart.
    Idle workspaces expire after idle_ttl seconds; beyond max_workspaces the
    least recently used one is evicted.
    """

    def __init__(
        self,
        idle_ttl: Optional[float] = WORKSPACE_IDLE_TTL,
        max_workspaces: Optional[int] = MAX_WORKSPACES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.idle_ttl = idle_ttl or None
        self.max_workspaces = max_workspaces or None
        self._clock = clock
        self._workspaces: "OrderedDict[str, Workspace]" = OrderedDict()
        self._last_seen: dict[str, float] = {}

    def _evict(self, now: float) -> None:
        if self.idle_ttl is not None:
            expired = [sid for sid, seen in self._last_seen.items() if now - seen > self.idle_ttl]
            for sid in expired:
                self.drop(sid)
                logger.info("Workspace for session %s expired", sid[:8])
        if self.max_workspaces is not None:
            while len(self._workspaces) > self.max_workspaces:
                sid = next(iter(self._workspaces))
                self.drop(sid)
                logger.info("Workspace for session %s evicted (limit %s)", sid[:8], self.max_workspaces)

    def get_or_create(self, session_id: str) -> Workspace:
        now = self._clock()
        self._evict(now)
        ws = self._workspaces.get(session_id)
        if ws is None:
            ws = Workspace(session_id=session_id)
            self._workspaces[session_id] = ws
            logger.info("Workspace created for session %s", session_id[:8])
        self._workspaces.move_to_end(session_id)
        self._last_seen[session_id] = now
        self._evict(now)
        return ws

    def drop(self, session_id: str) -> bool:
        self._last_seen.pop(session_id, None)
        return self._workspaces.pop(session_id, None) is not None

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._workspaces

    def __len__(self) -> int:
        return len(self._workspaces)


# Singleton
_store: Optional[WorkspaceStore] = None


def get_workspace_store() -> WorkspaceStore:
    global _store
    if _store is None:
        _store = WorkspaceStore()
    return _store
