"""Editor session: one editing context's document, history, tags, cover, and uploads"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional
from uuid import uuid4

from loguru import logger

from knowitall.config import Settings
from knowitall.core.commands import insert_image
from knowitall.core.errors import InvalidRange, PublishBlocked, UploadFailed
from knowitall.core.export import excerpt, to_html, to_text
from knowitall.core.history import History
from knowitall.core.models import Document, Image, InsertionPoint
from knowitall.core.tags import TagSet
from knowitall.core.utils.tree import iter_nodes
from knowitall.crud.models import Post
from knowitall.crud.posts import PostDraft
from knowitall.crud.store import PostStore
from knowitall.uploads.coordinator import UploadCoordinator
from knowitall.uploads.models import ImageTarget, PendingUpload


@dataclass
class PendingEntry:
    """An accepted inline upload that has not landed in the document yet.

    `url` is kept when the upload finished while its placeholder was absent
    (deleted or undone), so a retry after redo can reuse it.
    """
    upload: PendingUpload
    point: InsertionPoint
    failed: bool = False
    url: Optional[str] = None

    def move_to(self, index: int) -> None:
        self.point = self.point.model_copy(update={"index": index})


class EditorSession:
    """Owns the document and everything tied to it for a single editing context.

    Commands run synchronously against `document`; only uploads and publish
    suspend. Every state change goes through `History`, so failed commands
    and failed uploads leave the session exactly as it was.
    """

    def __init__(
        self,
        coordinator: UploadCoordinator,
        store: Optional[PostStore] = None,
        settings: Optional[Settings] = None,
        document: Optional[Document] = None,
        ):
        self.settings = settings or Settings()
        self.coordinator = coordinator
        self.store = store
        self.history = History(document or Document(), max_size=self.settings.max_history)
        self.tags = TagSet(limit=self.settings.max_tags)
        self.title = ""
        self.cover_image: Optional[str] = None
        self.pending: dict[str, PendingEntry] = {}

    @property
    def document(self) -> Document:
        return self.history.current

    # --- commands ---

    def _shift_pending(self, before: Document, after: Document) -> None:
        """Keep index-only insertion points beside the same blocks across a top-level change."""
        old, new = before.content, after.content
        limit = min(len(old), len(new))
        prefix = 0
        while prefix < limit and old[prefix] == new[prefix]:
            prefix += 1
        suffix = 0
        while suffix < limit - prefix and old[-1 - suffix] == new[-1 - suffix]:
            suffix += 1
        for entry in self.pending.values():
            index = entry.point.index
            if entry.point.node_id is not None or index <= prefix:
                continue
            if index >= len(old) - suffix:
                entry.move_to(index + len(new) - len(old))
            else:
                entry.move_to(min(index, len(new) - suffix))

    def _move(self, step: Callable[[], Document]) -> Document:
        before = self.document
        doc = step()
        self._shift_pending(before, doc)
        return doc

    def apply(self, command: Callable[..., Document], *args: Any, **kwargs: Any) -> Document:
        """Run `command(document, *args, **kwargs)` and record the result as a new snapshot."""
        doc = command(self.document, *args, **kwargs)
        return self._move(lambda: self.history.push(doc))

    def undo(self) -> Document:
        return self._move(self.history.undo)

    def redo(self) -> Document:
        return self._move(self.history.redo)

    def add_tag(self, text: str) -> bool:
        return self.tags.add(text)

    def remove_tag(self, text: str) -> bool:
        return self.tags.remove(text)

    # --- uploads ---

    def _begin(self, upload: PendingUpload, at: Optional[int], placeholder: bool) -> str:
        self.coordinator.validate(upload)
        size = len(self.document.content)
        index = size if at is None else at
        if not 0 <= index <= size:
            raise InvalidRange(f"Insertion index {index} is outside a document of {size} blocks")
        if placeholder:
            key = uuid4().hex
            self.apply(insert_image, upload.data_uri(), alt=upload.filename, at=index, node_id=key)
            point = InsertionPoint(node_id=key, index=index)
        else:
            key = f"drop-{uuid4().hex}"
            point = InsertionPoint(index=index)
        self.pending[key] = PendingEntry(upload, point)
        return key

    def begin_inline_upload(
        self,
        upload: PendingUpload,
        at: Optional[int] = None,
        placeholder: bool = True,
        ) -> InsertionPoint:
        """Validate `upload` and capture where it will land.

        With `placeholder`, a data-URI preview image is inserted now and the
        upload resolves into it; otherwise (paste/drop) it resolves by
        inserting at the captured index.
        """
        return self.pending[self._begin(upload, at, placeholder)].point

    def _make_room(self, index: int, key: Optional[str]) -> None:
        """An upload landed at `index`: later-started drops at or past it move down one."""
        keys = list(self.pending)
        later = set(keys[keys.index(key) + 1:]) if key in self.pending else set()
        for other, entry in self.pending.items():
            if other == key or entry.point.node_id is not None:
                continue
            if entry.point.index > index or (entry.point.index == index and other in later):
                entry.move_to(entry.point.index + 1)

    def _splice(self, point: InsertionPoint, url: str, key: Optional[str] = None) -> bool:
        before = self.document
        doc = self.coordinator.resolve_inline_insertion(before, url, point)
        if doc is before:
            return False
        self.history.push(doc)
        if point.node_id is None:
            self._make_room(min(point.index, len(before.content)), key)
        return True

    def _settle(self, key: str, url: str) -> Optional[str]:
        """Splice `url` for the entry under `key`; keep the entry for retry if its placeholder is gone."""
        entry = self.pending[key]
        if self._splice(entry.point, url, key):
            del self.pending[key]
            return url
        entry.failed = True
        entry.url = url
        logger.debug("Placeholder {} is absent; keeping {} for retry", entry.point.node_id, url)
        return None

    def resolve(self, point: InsertionPoint, url: str) -> bool:
        """Splice a finished upload in. Returns False when its placeholder is gone."""
        key = next((k for k, e in self.pending.items() if e.point == point), None)
        if key is None:
            return self._splice(point, url)
        return self._settle(key, url) is not None

    async def _complete(self, key: str) -> Optional[str]:
        entry = self.pending[key]
        try:
            url = await self.coordinator.upload(entry.upload)
        except UploadFailed:
            entry.failed = True
            raise
        if key not in self.pending:
            return None
        return self._settle(key, url)

    async def upload_inline(
        self,
        upload: PendingUpload,
        at: Optional[int] = None,
        placeholder: bool = True,
        ) -> Optional[str]:
        """Upload an inline image and resolve it; None when the result was dropped."""
        return await self._complete(self._begin(upload, at, placeholder))

    async def upload_image_node(self, node_id: str, upload: PendingUpload) -> Optional[str]:
        """Upload the file behind an existing image node (e.g. a local path in an imported draft)."""
        self.coordinator.validate(upload)
        self.pending[node_id] = PendingEntry(upload, InsertionPoint(node_id=node_id))
        return await self._complete(node_id)

    async def retry_upload(self, key: str) -> Optional[str]:
        """Retry a failed upload by its pending key (the placeholder id when there is one).

        A placeholder deleted in the meantime just clears the entry; one that
        came back (redo) after its upload finished reuses the stored URL.
        """
        entry = self.pending.get(key)
        if entry is None or not entry.failed:
            raise KeyError(f"No failed upload {key!r}")
        if entry.point.node_id and entry.point.node_id not in self.image_ids():
            del self.pending[key]
            return None
        entry.failed = False
        if entry.url:
            return self._settle(key, entry.url)
        return await self._complete(key)

    async def set_cover_image(self, upload: PendingUpload) -> str:
        """Upload a cover image into the slot outside the document tree."""
        cover = upload.model_copy(update={"target": ImageTarget.cover})
        self.cover_image = await self.coordinator.upload(cover)
        return self.cover_image

    def image_ids(self) -> set[str]:
        return {n.id for _, n in iter_nodes(self.document) if isinstance(n, Image)}

    def unresolved_images(self) -> list[str]:
        """Ids of image nodes whose src is still a placeholder rather than a public URL."""
        return [n.id for _, n in iter_nodes(self.document) if isinstance(n, Image) and not n.resolved]

    # --- publish ---

    def draft(self, author_id: Optional[str] = None) -> PostDraft:
        """Check the post is publishable and build the draft to persist."""
        if not self.title.strip():
            raise PublishBlocked("Title is required")
        if not to_text(self.document).strip():
            raise PublishBlocked("Content is required")
        unresolved = self.unresolved_images()
        if unresolved:
            raise PublishBlocked(f"{len(unresolved)} image(s) have not finished uploading", unresolved)
        return PostDraft(
            title=self.title.strip(),
            content=to_html(self.document),
            excerpt=excerpt(self.document, self.settings.excerpt_length),
            author_id=author_id or self.settings.author_id,
            tags=self.tags.to_list(),
            cover_image=self.cover_image,
            document=self.document.model_dump(mode="json"),
        )

    async def publish(self, author_id: Optional[str] = None) -> Post:
        """Persist the post. On PersistenceFailed the session is left untouched for a retry."""
        if self.store is None:
            raise RuntimeError("Session has no post store to publish to")
        draft = self.draft(author_id)
        post = await asyncio.to_thread(self.store.save, draft)
        logger.info("Published post {} ({!r})", post.id, post.title)
        return post
