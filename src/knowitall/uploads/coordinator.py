"""Upload coordination: validate, store, and splice resolved URLs into the document"""

import time
from uuid import uuid4

from loguru import logger

from knowitall.config import Settings
from knowitall.core.commands import insert_image
from knowitall.core.errors import UploadFailed
from knowitall.core.models import Document, Image, InsertionPoint
from knowitall.core.utils.tree import find_path, node_at, replace
from knowitall.uploads.models import ImageTarget, PendingUpload
from knowitall.uploads.storage import ObjectStorage, StorageError
from knowitall.uploads.validation import MAX_UPLOAD_BYTES, validate_upload


class UploadCoordinator:
    """Hands accepted files to an ObjectStorage, one put per file, no retries."""

    def __init__(
        self,
        storage: ObjectStorage,
        owner_id: str = "anonymous",
        inline_bucket: str = "blog-images",
        cover_bucket: str = "blog-covers",
        max_bytes: int = MAX_UPLOAD_BYTES,
        ):
        self.storage = storage
        self.owner_id = owner_id
        self.buckets = {ImageTarget.inline: inline_bucket, ImageTarget.cover: cover_bucket}
        self.max_bytes = max_bytes

    @classmethod
    def from_settings(cls, storage: ObjectStorage, settings: Settings) -> "UploadCoordinator":
        return cls(
            storage,
            owner_id=settings.author_id,
            inline_bucket=settings.inline_bucket,
            cover_bucket=settings.cover_bucket,
            max_bytes=settings.max_upload_bytes,
        )

    def validate(self, upload: PendingUpload) -> PendingUpload:
        return validate_upload(upload, self.max_bytes)

    def object_path(self, upload: PendingUpload) -> str:
        """Collision-resistant name: owner, epoch millis, and a random suffix."""
        return f"{self.owner_id}-{int(time.time() * 1000)}-{uuid4().hex[:8]}.{upload.extension}"

    async def upload(self, upload: PendingUpload) -> str:
        """Validate and store `upload`; return its public URL or raise UploadFailed."""
        self.validate(upload)
        bucket = self.buckets[upload.target]
        path = self.object_path(upload)
        try:
            stored = await self.storage.put(bucket, path, upload.data, upload.content_type)
        except StorageError as e:
            logger.warning("Upload of {}/{} failed: {}", bucket, path, e)
            raise UploadFailed(str(e)) from e
        url = self.storage.public_url(bucket, stored)
        logger.info("Uploaded {} image ({} bytes) -> {}", upload.target.value, upload.size, url)
        return url

    def resolve_inline_insertion(self, doc: Document, url: str, point: InsertionPoint) -> Document:
        """Point the placeholder named by `point` at `url`, or insert a new image at its index.

        A placeholder that has since been deleted drops the result: the
        document is returned unchanged.
        """
        if point.node_id is None:
            return insert_image(doc, url, at=min(point.index, len(doc.content)))
        path = find_path(doc, lambda n: isinstance(n, Image) and n.id == point.node_id)
        if path is None:
            logger.debug("Placeholder {} is gone; dropping {}", point.node_id, url)
            return doc
        return replace(doc, path, node_at(doc, path).model_copy(update={"src": url}))
