"""
Object storage adapter for report attachments.

Wraps a Django ``Storage`` backend (``default_storage`` unless another
is passed in).  Stored names are ``{upload_prefix}/{epoch millis}-{name}``
so two uploads of ``photo.jpg`` never overwrite each other.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from django.core.files.storage import Storage, default_storage
from django.core.files.uploadedfile import UploadedFile
from django.utils.text import get_valid_filename

from core.config import PortalConfig

from .models import FileCategory

logger = logging.getLogger(__name__)


def categorize(content_type: str | None) -> str:
    """``image/*`` → image, ``video/*`` → video, anything else → document."""
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return FileCategory.IMAGE
    if content_type.startswith("video/"):
        return FileCategory.VIDEO
    return FileCategory.DOCUMENT


@dataclass(frozen=True)
class StoredFile:
    url: str
    name: str
    content_type: str
    size: int | None
    category: str

    def as_metadata(self) -> dict:
        return {
            "url": self.url,
            "name": self.name,
            "content_type": self.content_type,
            "size": self.size,
            "category": self.category,
        }


class ReportFileStorage:

    def __init__(self, config: PortalConfig | None = None, storage: Storage | None = None) -> None:
        self.config = config or PortalConfig.from_settings()
        self.storage = storage or default_storage

    def build_name(self, original_name: str) -> str:
        stamp = int(time.time() * 1000)
        safe_name = get_valid_filename(original_name or "upload")
        return f"{self.config.upload_prefix}/{stamp}-{safe_name}"

    def upload(self, upload: UploadedFile) -> StoredFile:
        """
        Persist one uploaded file and return its public URL.

        Storage errors propagate; the intake service decides what a
        failure means for the submission.
        """
        content_type = getattr(upload, "content_type", None) or "application/octet-stream"
        saved_name = self.storage.save(self.build_name(upload.name), upload)
        stored = StoredFile(
            url=self.storage.url(saved_name),
            name=saved_name,
            content_type=content_type,
            size=getattr(upload, "size", None),
            category=categorize(content_type),
        )
        logger.debug("Stored %s (%s, %s bytes)", saved_name, content_type, stored.size)
        return stored
