"""Upload acceptance rules, checked before any network call"""

from knowitall.core.errors import TooLarge, UnsupportedType
from knowitall.uploads.models import ImageTarget, PendingUpload


MAX_UPLOAD_BYTES = 5 * 1024 * 1024
COVER_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})


def accepts_type(content_type: str, target: ImageTarget) -> bool:
    """Covers need one of COVER_TYPES; inline images only need an image/ type."""
    if target == ImageTarget.cover:
        return content_type in COVER_TYPES
    return content_type.startswith("image/")


def validate_upload(upload: PendingUpload, max_bytes: int = MAX_UPLOAD_BYTES) -> PendingUpload:
    """Raise UnsupportedType or TooLarge; return the upload unchanged when accepted."""
    if not accepts_type(upload.content_type, upload.target):
        raise UnsupportedType(upload.content_type, upload.target.value)
    if upload.size > max_bytes:
        raise TooLarge(upload.size, max_bytes)
    return upload
