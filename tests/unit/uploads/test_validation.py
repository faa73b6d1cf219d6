"""Unit tests for uploads/validation.py and uploads/models.py"""

import base64

import pytest

from knowitall.core.errors import TooLarge, UnsupportedType
from knowitall.uploads.models import ImageTarget, PendingUpload
from knowitall.uploads.validation import MAX_UPLOAD_BYTES, accepts_type, validate_upload


@pytest.mark.parametrize("content_type, target, accepted", [
    ("image/png", ImageTarget.inline, True),
    ("image/svg+xml", ImageTarget.inline, True),
    ("image/svg+xml", ImageTarget.cover, False),
    ("image/webp", ImageTarget.cover, True),
    ("image/gif", ImageTarget.cover, True),
    ("application/pdf", ImageTarget.inline, False),
    ("text/plain", ImageTarget.cover, False),
])
def test_accepts_type(content_type, target, accepted):
    assert accepts_type(content_type, target) is accepted


def test_validate_upload_size_limit():
    at_limit = PendingUpload(data=b"\x00" * MAX_UPLOAD_BYTES, content_type="image/png")
    assert validate_upload(at_limit) is at_limit
    over = PendingUpload(data=b"\x00" * (MAX_UPLOAD_BYTES + 1), content_type="image/png")
    with pytest.raises(TooLarge, match="less than 5MB"):
        validate_upload(over)


def test_validate_upload_checks_type_first():
    upload = PendingUpload(data=b"\x00" * 10, content_type="text/html", target=ImageTarget.cover)
    with pytest.raises(UnsupportedType) as exc:
        validate_upload(upload, max_bytes=1)
    assert exc.value.target == "cover"


def test_pending_upload_extension_and_data_uri():
    upload = PendingUpload(data=b"abc", content_type="image/png", filename="Photo.JPEG")
    assert upload.extension == "jpeg"
    assert upload.size == 3
    assert upload.data_uri() == "data:image/png;base64," + base64.b64encode(b"abc").decode()
    assert PendingUpload(data=b"x", content_type="image/png").extension == "png"


def test_pending_upload_from_path(tmp_path):
    f = tmp_path / "shot.png"
    f.write_bytes(b"\x89PNG")
    upload = PendingUpload.from_path(f, ImageTarget.cover)
    assert upload.content_type == "image/png"
    assert upload.filename == "shot.png"
    assert upload.target == ImageTarget.cover
    assert upload.data == b"\x89PNG"
