"""Order-preserving, deduplicated tag collection for a post"""

from typing import Iterable, Iterator

from loguru import logger


class TagSet:
    """Tags in first-insertion order; exact, case-sensitive deduplication.

    `limit` caps the number of tags (0 = unlimited); adds past it are ignored.
    """

    def __init__(self, tags: Iterable[str] = (), limit: int = 0):
        self._tags: dict[str, None] = {}
        self.limit = limit
        for tag in tags:
            self.add(tag)

    def add(self, text: str) -> bool:
        """Trim and append `text`. Returns False when empty, duplicate, or over the limit."""
        tag = text.strip()
        if not tag or tag in self._tags:
            return False
        if self.limit and len(self._tags) >= self.limit:
            logger.debug("Tag limit {} reached; ignoring {!r}", self.limit, tag)
            return False
        self._tags[tag] = None
        return True

    def remove(self, text: str) -> bool:
        if text not in self._tags:
            return False
        del self._tags[text]
        return True

    def __contains__(self, tag: object) -> bool:
        return tag in self._tags

    def __iter__(self) -> Iterator[str]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def to_list(self) -> list[str]:
        return list(self._tags)
