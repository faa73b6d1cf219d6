"""Linear undo/redo history of immutable document snapshots"""

from knowitall.core.models import Document


class History:
    """Snapshot stack with a current pointer.

    `push` truncates any redo tail; `undo`/`redo` only move the pointer and
    are no-ops at either end. With `max_size` > 0 the oldest snapshots are
    dropped once the stack grows past it; 0 keeps everything.
    """

    def __init__(self, initial: Document, max_size: int = 0):
        self._snapshots: list[Document] = [initial]
        self._index = 0
        self.max_size = max_size

    @property
    def current(self) -> Document:
        return self._snapshots[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def __len__(self) -> int:
        return len(self._snapshots)

    def push(self, doc: Document) -> Document:
        del self._snapshots[self._index + 1:]
        self._snapshots.append(doc)
        if self.max_size and len(self._snapshots) > self.max_size:
            del self._snapshots[:len(self._snapshots) - self.max_size]
        self._index = len(self._snapshots) - 1
        return doc

    def undo(self) -> Document:
        if self.can_undo:
            self._index -= 1
        return self.current

    def redo(self) -> Document:
        if self.can_redo:
            self._index += 1
        return self.current
