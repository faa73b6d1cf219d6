"""Pending image uploads: bytes awaiting transfer to object storage"""

import base64
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ImageTarget(str, Enum):
    inline = "inline"   # embedded in the post body
    cover = "cover"     # the post's cover slot, outside the document tree


class PendingUpload(BaseModel):
    """A selected, dropped, or pasted file. Never persisted."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    content_type: str
    target: ImageTarget = ImageTarget.inline
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        if self.filename and "." in self.filename:
            return self.filename.rsplit(".", 1)[-1].lower()
        guessed = mimetypes.guess_extension(self.content_type)
        return guessed.lstrip(".") if guessed else "bin"

    def data_uri(self) -> str:
        """Base64 data-URI used as a placeholder `src` until the upload resolves."""
        return f"data:{self.content_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    @classmethod
    def from_path(cls, path: Path, target: ImageTarget = ImageTarget.inline) -> "PendingUpload":
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(data=path.read_bytes(), content_type=content_type, target=target, filename=path.name)
