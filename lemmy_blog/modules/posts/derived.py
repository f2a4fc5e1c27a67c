"""Slug generation and fields derived from post content."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from lemmy_blog.infrastructure.utils.common import current_millis

WORDS_PER_MINUTE = 200
PREVIEW_LENGTH = 200
PREVIEW_SUFFIX = "…"
FALLBACK_SLUG = "post"

_INVALID_SLUG_CHARS = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_HYPHENS = re.compile(r"-+")


@dataclass(frozen=True)
class DerivedFields:
    word_count: int
    read_time: int
    content_preview: str


def generate_slug(title: str) -> str:
    """Turn a title into a URL-safe slug. Not unique on its own.

    >>> generate_slug("Hello, World!")
    'hello-world'
    >>> generate_slug("  --Rust  &  Python--  ")
    'rust-python'
    """
    slug = _INVALID_SLUG_CHARS.sub("", (title or "").lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _REPEATED_HYPHENS.sub("-", slug)
    return slug.strip("-")


def unique_slug(title: str, now_ms: Optional[int] = None) -> str:
    """Append the creation time in unix milliseconds to the title slug.

    Titles made only of punctuation fall back to ``post`` so the key never
    starts with a hyphen.
    """
    if now_ms is None:
        now_ms = current_millis()
    base = generate_slug(title) or FALLBACK_SLUG
    return f"{base}-{now_ms}"


def count_words(content: str) -> int:
    # str.split() without a separator already ignores leading/trailing whitespace,
    # so empty content counts as zero words.
    return len((content or "").split())


def compute_read_time(word_count: int) -> int:
    return math.ceil(word_count / WORDS_PER_MINUTE)


def build_preview(content: str) -> str:
    content = content or ""
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + PREVIEW_SUFFIX
    return content


def compute_derived(content: str) -> DerivedFields:
    """Compute word count, read time and preview together for ``content``."""
    word_count = count_words(content)
    return DerivedFields(
        word_count=word_count,
        read_time=compute_read_time(word_count),
        content_preview=build_preview(content),
    )


def normalize_tags(tags: Union[str, Iterable[str], None]) -> list[str]:
    """Accept a list of tags or a comma separated string.

    Entries are trimmed and blanks dropped; duplicates and order are kept.
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        raw = tags.split(",")
    else:
        raw = list(tags)
    return [str(tag).strip() for tag in raw if str(tag).strip()]
