"""
Upload intake: filter a batch of files and feed them to the playlist.
"""

import logging
from typing import Iterable, List, Tuple

from app.schemas.track import UploadFailure, UploadReport
from app.services.library.playlist import PlaylistStateMachine
from app.services.library.uploads import UploadedFile, is_mpeg_audio

logger = logging.getLogger(__name__)

SOURCE_DROP = "drop"
SOURCE_SELECT = "select"


def filter_dropped(
    files: Iterable[UploadedFile],
) -> Tuple[List[UploadedFile], List[UploadedFile]]:
    """Split a dropped batch into (accepted, rejected) by MP3 type or extension."""
    accepted: List[UploadedFile] = []
    rejected: List[UploadedFile] = []
    for upload in files:
        (accepted if is_mpeg_audio(upload) else rejected).append(upload)
    return accepted, rejected


class UploadIntake:
    """Sequential, partial-success upload of a batch into one playlist."""

    def __init__(self, playlist: PlaylistStateMachine):
        self.playlist = playlist

    async def ingest(
        self, files: List[UploadedFile], source: str = SOURCE_SELECT
    ) -> UploadReport:
        """
        Upload files one at a time in input order.

        Dropped files that aren't MP3 are skipped without an error. The
        file picker already restricts the selection, so its files are all
        attempted. A failed file is reported and the batch continues.
        """
        report = UploadReport()

        if source == SOURCE_DROP:
            files, rejected = filter_dropped(files)
            report.filtered = [upload.file_name for upload in rejected]

        for upload in files:
            try:
                track = await self.playlist.append(upload)
            except Exception as e:
                logger.error(f"Error uploading file {upload.file_name}: {e}")
                track = None

            if track is None:
                report.failed.append(
                    UploadFailure(
                        file_name=upload.file_name,
                        detail=f"Failed to upload {upload.file_name}",
                    )
                )
                continue

            report.added.append(self.playlist.with_url(track))

        logger.info(
            f"Upload batch for {self.playlist.user_id}: {len(report.added)} added, "
            f"{len(report.failed)} failed, {len(report.filtered)} filtered"
        )
        return report
