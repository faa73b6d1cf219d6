"""Filename-safe slugs for exported posts"""

import re
import unicodedata


def slugify(title: str, max_length: int = 60) -> str:
    """Lowercase ASCII, hyphen-separated, trimmed to max_length at a word boundary."""
    text = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii").lower()
    text = re.sub(r"[^a-z0-9]+", "-", text).strip("-")
    if len(text) > max_length:
        text = text[:max_length].rsplit("-", 1)[0]
    return text
