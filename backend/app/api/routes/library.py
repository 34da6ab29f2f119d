"""
REST API endpoints for the signed-in user's song library.

Each endpoint works on the in-memory playlist of the caller's workspace;
persistence goes through whichever store the workspace was resolved with.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel

from app.dependencies import get_session_resolver, get_workspace
from app.schemas.library import DatabaseStatusResponse, LibraryResponse
from app.schemas.track import ReorderRequest, SyncResponse, TrackWithUrl, UploadReport
from app.services.library import (
    InvalidOrderError,
    LibraryWorkspace,
    LocalTrackStore,
    SessionResolver,
    SongNotFoundError,
    UploadedFile,
)
from app.services.library.intake import SOURCE_DROP, SOURCE_SELECT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/library", tags=["library"])


class MoveRequest(BaseModel):
    """One drag step: the dragged slot and the slot it is over."""

    from_index: int
    to_index: int


@router.get("", response_model=LibraryResponse)
async def get_library(workspace: LibraryWorkspace = Depends(get_workspace)):
    """Profile, storage mode and the ordered songs with playable URLs."""
    return LibraryResponse(
        profile=workspace.profile,
        storage_mode=workspace.storage_mode,
        songs=workspace.playlist.with_urls(),
        now_playing=workspace.playlist.playback.now_playing,
    )


@router.get("/status", response_model=DatabaseStatusResponse)
async def get_database_status(
    resolver: SessionResolver = Depends(get_session_resolver),
):
    """Whether the database tables have been provisioned."""
    ready = await resolver.gateway.schema_ready()
    return DatabaseStatusResponse(status="ready" if ready else "missing")


@router.post("/songs", response_model=UploadReport)
async def upload_songs(
    files: List[UploadFile] = File(...),
    source: str = Form(SOURCE_SELECT),
    workspace: LibraryWorkspace = Depends(get_workspace),
):
    """
    Upload a batch of files.

    ``source`` is ``drop`` for drag-and-drop, which skips non-MP3 files,
    or ``select`` for the file picker.
    """
    if source not in (SOURCE_DROP, SOURCE_SELECT):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown upload source: {source}",
        )

    uploads = [
        UploadedFile(
            file_name=upload.filename or "upload.mp3",
            content_type=upload.content_type or "",
            data=await upload.read(),
        )
        for upload in files
    ]
    return await workspace.intake.ingest(uploads, source=source)


@router.delete("/songs/{song_id}")
async def delete_song(
    song_id: str, workspace: LibraryWorkspace = Depends(get_workspace)
):
    """Delete a song and its stored audio."""
    try:
        deleted = await workspace.playlist.remove(song_id)
    except SongNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Song not found")

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to delete song"
        )

    return {"deleted": song_id, "now_playing": workspace.playlist.playback.now_playing}


@router.put("/order", response_model=List[TrackWithUrl])
async def reorder_songs(
    request: ReorderRequest, workspace: LibraryWorkspace = Depends(get_workspace)
):
    """Replace the playlist order; positions are saved after a quiet period."""
    try:
        workspace.playlist.reorder(request.song_ids)
    except InvalidOrderError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return workspace.playlist.with_urls()


@router.post("/order/move", response_model=List[TrackWithUrl])
async def move_song(
    request: MoveRequest, workspace: LibraryWorkspace = Depends(get_workspace)
):
    """Move one song while it is being dragged."""
    try:
        workspace.playlist.move(request.from_index, request.to_index)
    except InvalidOrderError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return workspace.playlist.with_urls()


@router.post("/sync", response_model=SyncResponse)
async def sync_order(workspace: LibraryWorkspace = Depends(get_workspace)):
    """Save the current order right away."""
    if not await workspace.playlist.sync_positions_now():
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to sync playlist order",
        )

    return SyncResponse(synced=True, message="Synced!")


@router.get("/blobs/{handle}")
async def get_transient_blob(
    handle: str, workspace: LibraryWorkspace = Depends(get_workspace)
):
    """Audio uploaded while the library runs on local storage."""
    store = workspace.store
    owned = any(track.file_path == handle for track in workspace.playlist.tracks)
    blob = (
        store.blobs.get(handle)
        if owned and isinstance(store, LocalTrackStore)
        else None
    )
    if blob is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blob not found")

    data, content_type = blob
    return Response(content=data, media_type=content_type)
