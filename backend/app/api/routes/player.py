"""
Playback selection endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import get_workspace
from app.schemas.library import PlayerState
from app.services.library import LibraryWorkspace

router = APIRouter(prefix="/api/player", tags=["player"])


@router.get("", response_model=PlayerState)
async def get_player(workspace: LibraryWorkspace = Depends(get_workspace)):
    return PlayerState(now_playing=workspace.playlist.playback.now_playing)


@router.post("/toggle/{song_id}", response_model=PlayerState)
async def toggle(song_id: str, workspace: LibraryWorkspace = Depends(get_workspace)):
    """Play the song, or pause it if it is already playing."""
    if workspace.playlist.find(song_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Song not found")

    return PlayerState(now_playing=workspace.playlist.playback.toggle(song_id))


@router.post("/ended/{song_id}", response_model=PlayerState)
async def track_ended(
    song_id: str, workspace: LibraryWorkspace = Depends(get_workspace)
):
    """Advance to the next song when one finishes."""
    return PlayerState(now_playing=workspace.playlist.playback.track_ended(song_id))
