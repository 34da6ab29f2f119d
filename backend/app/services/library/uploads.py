"""
Uploaded files as they arrive from the upload form.
"""

from dataclasses import dataclass

MPEG_AUDIO_TYPE = "audio/mpeg"
MP3_SUFFIX = ".mp3"


@dataclass
class UploadedFile:
    """One candidate file from a drop or a file-picker selection."""

    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def mime_type(self) -> str:
        return self.content_type or MPEG_AUDIO_TYPE

    @property
    def title(self) -> str:
        """Default title: the file name without its .mp3 suffix."""
        return self.file_name.removesuffix(MP3_SUFFIX)


def is_mpeg_audio(upload: UploadedFile) -> bool:
    """Declared type or file name says MP3."""
    return upload.content_type == MPEG_AUDIO_TYPE or upload.file_name.endswith(
        MP3_SUFFIX
    )
