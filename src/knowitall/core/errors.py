"""Typed failures raised by editor commands, uploads, and publishing"""


class EditorError(Exception):
    """Base class for every failure surfaced by an editing session."""


class InvalidCommand(EditorError, ValueError):
    """A command was rejected; the document is unchanged."""


class InvalidRange(InvalidCommand):
    """A range or point does not address existing text."""


class InvalidAttrs(InvalidCommand):
    """Node or mark attributes are outside the schema."""


class InvalidDimensions(InvalidCommand):
    """Table dimensions must both be at least 1."""


class UploadRejected(EditorError):
    """A file was refused before any network call."""


class UnsupportedType(UploadRejected):
    def __init__(self, content_type: str, target: str):
        super().__init__(f"Unsupported image type {content_type!r} for {target} image")
        self.content_type = content_type
        self.target = target


class TooLarge(UploadRejected):
    def __init__(self, size: int, limit: int):
        super().__init__(f"Image must be less than {limit / (1024 * 1024):g}MB (got {size} bytes)")
        self.size = size
        self.limit = limit


class UploadFailed(EditorError):
    """The object store did not accept the file."""

    def __init__(self, reason: str):
        super().__init__(f"Failed to upload image: {reason}")
        self.reason = reason


class PublishBlocked(EditorError, ValueError):
    """The post is not ready to publish (missing title/content or unresolved images)."""

    def __init__(self, message: str, node_ids: list[str] | None = None):
        super().__init__(message)
        self.node_ids = node_ids or []


class PersistenceFailed(EditorError):
    """The post store rejected a publish; the session keeps its state."""
