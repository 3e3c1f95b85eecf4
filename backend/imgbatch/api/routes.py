"""API routes: one workspace per session, acquisition, conversion and download."""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response

from imgbatch.collector import InputCollector
from imgbatch.config import TARGET_FORMATS
from imgbatch.conversion.models import PendingImage
from imgbatch.conversion.service import DECODE_ERRORS, ConversionService, get_conversion_service
from imgbatch.conversion.thumbnail import make_thumbnail
from imgbatch.errors import ConversionFailedError, EmptyWorkspaceError, UnsupportedFormatError, UrlBatchError
from imgbatch.fetch import RemoteFetcher
from imgbatch.workspace import Workspace, get_workspace_store

logger = logging.getLogger("imgbatch.api")
router = APIRouter(prefix="/api", tags=["imgbatch"])

_fetcher: Optional[RemoteFetcher] = None


def get_remote_fetcher() -> RemoteFetcher:
    global _fetcher
    if _fetcher is None:
        _fetcher = RemoteFetcher()
    return _fetcher


async def close_remote_fetcher() -> None:
    global _fetcher
    if _fetcher is not None:
        await _fetcher.close()
        _fetcher = None


def get_or_create_session_id(request: Request) -> str:
    """Use X-Session-ID header or generate and attach to request for response header."""
    sid = (request.headers.get("X-Session-ID") or "").strip()
    if sid:
        return sid
    sid = str(uuid.uuid4())
    request.state.session_id = sid
    return sid


def get_workspace(session_id: str = Depends(get_or_create_session_id)) -> Workspace:
    return get_workspace_store().get_or_create(session_id)


def get_collector(
    workspace: Workspace = Depends(get_workspace),
    fetcher: RemoteFetcher = Depends(get_remote_fetcher),
) -> InputCollector:
    return InputCollector(workspace, fetcher)


async def _read_uploads(files: Optional[list[UploadFile]]) -> list[PendingImage]:
    items = []
    for file in files or []:
        data = await file.read()
        items.append(PendingImage(
            name=file.filename or "image",
            content_type=(file.content_type or "").lower(),
            data=data,
        ))
    return items


def _added_response(added: list[PendingImage], workspace: Workspace) -> dict:
    return {
        "added": [{"name": p.name, "content_type": p.content_type, "size": p.size} for p in added],
        "workspace": workspace.to_dict(),
    }


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/formats")
def get_formats():
    return {"target": TARGET_FORMATS}


@router.get("/workspace")
def workspace_state(workspace: Workspace = Depends(get_workspace)):
    return workspace.to_dict()


@router.put("/workspace/format")
def set_format(format: str = Body(..., embed=True), workspace: Workspace = Depends(get_workspace)):
    try:
        workspace.set_target_format(format)
    except UnsupportedFormatError as e:
        raise HTTPException(400, str(e))
    return workspace.to_dict()


@router.put("/workspace/url-text")
def set_url_text(text: str = Body("", embed=True), workspace: Workspace = Depends(get_workspace)):
    """Save the URL-list draft so it survives until the batch is added."""
    workspace.url_text = text or ""
    return workspace.to_dict()


@router.post("/workspace/files")
async def add_files(
    files: Optional[list[UploadFile]] = File(None),
    collector: InputCollector = Depends(get_collector),
):
    """File picker selection. Non-image entries are dropped silently."""
    added = collector.add_from_picker(await _read_uploads(files))
    return _added_response(added, collector.workspace)


@router.post("/workspace/drop")
async def add_drop(
    files: Optional[list[UploadFile]] = File(None),
    uri_list: Optional[list[str]] = Form(None),
    collector: InputCollector = Depends(get_collector),
):
    """Drag-and-drop payload: files and text/uri-list entries. Failing URIs are skipped."""
    added = await collector.add_from_drop(await _read_uploads(files), uri_list or [])
    return _added_response(added, collector.workspace)


@router.post("/workspace/urls")
async def add_urls(
    text: Optional[str] = Body(None, embed=True),
    collector: InputCollector = Depends(get_collector),
):
    """Newline-separated URL list. One failure rejects the whole batch."""
    try:
        added = await collector.add_from_url_list(text)
    except EmptyWorkspaceError as e:
        raise HTTPException(409, str(e))
    except UrlBatchError as e:
        raise HTTPException(502, {
            "message": "Failed to add image URLs. Make sure every URL is reachable and points to an image.",
            "failed": [{"url": f.url, "reason": f.reason} for f in e.failures],
        })
    return _added_response(added, collector.workspace)


@router.delete("/workspace/items/{index}")
def remove_item(index: int, collector: InputCollector = Depends(get_collector)):
    try:
        removed = collector.remove_item(index)
    except IndexError as e:
        raise HTTPException(404, str(e))
    return {"removed": removed.name, "workspace": collector.workspace.to_dict()}


@router.delete("/workspace/items")
def clear_items(collector: InputCollector = Depends(get_collector)):
    collector.clear()
    return collector.workspace.to_dict()


@router.get("/workspace/items/{index}/thumbnail")
def item_thumbnail(index: int, workspace: Workspace = Depends(get_workspace)):
    if not 0 <= index < len(workspace.pending):
        raise HTTPException(404, "Item not found")
    try:
        data = make_thumbnail(workspace.pending[index].data)
    except DECODE_ERRORS as e:
        logger.warning("Could not build thumbnail for %s: %s", workspace.pending[index].name, e)
        raise HTTPException(422, "Image could not be decoded")
    return Response(content=data, media_type="image/png")


@router.post("/workspace/convert")
async def convert_all(
    workspace: Workspace = Depends(get_workspace),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Convert every pending image to the current target format."""
    try:
        converted = await workspace.convert_all(svc)
    except EmptyWorkspaceError as e:
        raise HTTPException(409, str(e))
    except ConversionFailedError as e:
        raise HTTPException(422, {
            "message": str(e),
            "failed": [{"index": f.index, "name": f.name, "reason": f.reason} for f in e.failures],
        })
    return {
        "outputs": [
            {"source_name": c.source_name, "format": c.target_format.value, "size": c.size,
             "width": c.width, "height": c.height}
            for c in converted
        ],
        "workspace": workspace.to_dict(),
    }


@router.get("/workspace/archive")
def download_archive(workspace: Workspace = Depends(get_workspace)):
    """Zip of all converted outputs as an attachment."""
    archive = workspace.build_archive()
    if archive is None:
        raise HTTPException(409, "Nothing converted yet")
    return Response(
        content=archive.data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive.filename}"'},
    )


@router.delete("/session")
def drop_session(session_id: str = Depends(get_or_create_session_id)):
    """Forget the session's workspace."""
    get_workspace_store().drop(session_id)
    return {"ok": True, "message": "Session data cleared"}
