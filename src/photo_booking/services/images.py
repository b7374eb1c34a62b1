"""Costume and session image uploads."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from photo_booking import messages

MAX_IMAGE_BYTES = 10 * 1024 * 1024
ALLOWED_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"}
)

_logger = logging.getLogger(__name__)


class ImageStorage(Protocol):
    """Object storage for uploaded images."""

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store the bytes at path and return the public URL."""


@dataclass(frozen=True)
class UploadResult:
    """Outcome of an image upload."""

    success: bool
    url: str | None = None
    error: str | None = None


def validate_image(content: bytes, content_type: str) -> str | None:
    """Return an error message when the image cannot be uploaded."""
    if len(content) > MAX_IMAGE_BYTES:
        return messages.UPLOAD_TOO_LARGE
    if content_type not in ALLOWED_CONTENT_TYPES:
        return messages.UPLOAD_UNSUPPORTED_TYPE
    return None


@dataclass
class ImageService:
    """Validate and upload photo session images."""

    storage: ImageStorage

    def upload_session_image(
        self,
        photo_session_id: UUID | None,
        filename: str,
        content: bytes,
        content_type: str,
    ) -> UploadResult:
        """Upload an image under the session's folder and return its URL."""
        error = validate_image(content, content_type)
        if error:
            return UploadResult(success=False, error=error)
        path = _object_path(photo_session_id, filename)
        try:
            url = self.storage.upload(path, content, content_type)
        except Exception:
            _logger.exception("Image upload failed", extra={"path": path})
            return UploadResult(success=False, error=messages.UPLOAD_FAILED)
        return UploadResult(success=True, url=url)


def _object_path(photo_session_id: UUID | None, filename: str) -> str:
    """Build a collision-free object path from the upload time."""
    folder = str(photo_session_id) if photo_session_id else "drafts"
    extension = filename.rsplit(".", maxsplit=1)[-1].lower() if "." in filename else "bin"
    timestamp = int(datetime.now(tz=UTC).timestamp() * 1000)
    return f"{folder}/{timestamp}.{extension}"
