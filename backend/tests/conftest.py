"""
Shared fixtures: image payloads, a fetcher backed by httpx.MockTransport,
workspaces and a FastAPI TestClient bound to its own session.
"""

import sys
import uuid
from io import BytesIO
from pathlib import Path

import httpx
import pytest
from PIL import Image

# Add the backend directory to the import path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from imgbatch.collector import InputCollector
from imgbatch.conversion.models import PendingImage
from imgbatch.conversion.service import ConversionService
from imgbatch.fetch import RemoteFetcher
from imgbatch.workspace import Workspace


def image_bytes(fmt: str = "PNG", size=(4, 3), mode: str = "RGBA", color=(200, 10, 10, 255)) -> bytes:
    if mode == "RGB" and len(color) == 4:
        color = color[:3]
    buf = BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


def pending(name: str = "a.png", content_type: str = "image/png", data: bytes = None, size=(4, 3)) -> PendingImage:
    return PendingImage(name=name, content_type=content_type, data=data if data is not None else image_bytes(size=size))


# ============================================
# Remote images served by the mock transport
# ============================================

REMOTE = "https://img.example.com"
SLOW = f"{REMOTE}/slow/huge.png"

REMOTE_RESOURCES = {
    f"{REMOTE}/photos/cat.png": (200, "image/png", image_bytes(size=(5, 5))),
    f"{REMOTE}/photos/dog.jpg": (200, "image/jpeg; charset=binary", image_bytes("JPEG", size=(6, 4), mode="RGB")),
    f"{REMOTE}/page.html": (200, "text/html; charset=utf-8", b"<html></html>"),
    f"{REMOTE}/missing.png": (404, "text/plain", b"not found"),
}


def _handler(request: httpx.Request) -> httpx.Response:
    if str(request.url) == SLOW:
        raise httpx.ReadTimeout("read timed out", request=request)
    entry = REMOTE_RESOURCES.get(str(request.url))
    if entry is None:
        raise httpx.ConnectError("connection refused", request=request)
    status, content_type, body = entry
    return httpx.Response(status, headers={"Content-Type": content_type}, content=body)


@pytest.fixture
def fetcher():
    return RemoteFetcher(timeout=5, transport=httpx.MockTransport(_handler))


@pytest.fixture
def workspace():
    return Workspace(session_id=f"test-{uuid.uuid4().hex[:8]}")


@pytest.fixture
def collector(workspace, fetcher):
    return InputCollector(workspace, fetcher)


@pytest.fixture
def service():
    svc = ConversionService(max_workers=4, decode_timeout=10)
    yield svc
    svc.shutdown()


@pytest.fixture
def client(fetcher):
    from fastapi.testclient import TestClient

    from imgbatch.api.routes import get_remote_fetcher
    from imgbatch.main import app

    app.dependency_overrides[get_remote_fetcher] = lambda: fetcher
    with TestClient(app, headers={"X-Session-ID": f"test-{uuid.uuid4()}"}) as c:
        yield c
    app.dependency_overrides.clear()
