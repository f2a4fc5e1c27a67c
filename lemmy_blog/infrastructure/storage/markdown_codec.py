"""Helpers for storing posts as Markdown files with YAML frontmatter.

The body is written and read back byte-exact; only the YAML header goes
through the frontmatter handler.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict

import frontmatter
import yaml

MARKDOWN_SUFFIXES = (".md", ".mdx")

# The stock boundary ``^-{3,}\s*$`` also swallows blank lines that open the body.
_handler = frontmatter.YAMLHandler(fm_boundary=re.compile(r"^-{3,}[ \t]*\r?$", re.MULTILINE))


def _plain(value: Any) -> Any:
    # YAML turns bare dates into date objects; the post model stores strings.
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def dump_markdown(metadata: Dict[str, Any], content: str) -> str:
    """Render ``metadata`` as a frontmatter block followed by ``content`` unchanged."""
    header = _handler.export(metadata)
    return f"{_handler.START_DELIMITER}\n{header}\n{_handler.END_DELIMITER}\n{content or ''}"


def record_to_markdown(record: Dict[str, Any]) -> str:
    """Serialize a full post record; everything except the body goes to frontmatter."""
    metadata = {key: value for key, value in record.items() if key != "content"}
    return dump_markdown(metadata, record.get("content", ""))


def markdown_to_record(text: str) -> Dict[str, Any]:
    """Parse a Markdown file back into a post record.

    Text without a frontmatter block is treated as a bare body.

    Raises:
        ValueError: If the frontmatter is unterminated, not valid YAML or not a mapping.
    """
    if not _handler.detect(text):
        return {"content": text}

    try:
        header, body = _handler.split(text)
    except ValueError as exc:
        msg = "Unterminated frontmatter block"
        raise ValueError(msg) from exc

    try:
        metadata = _handler.load(header)
    except yaml.YAMLError as exc:
        msg = f"Invalid frontmatter: {exc}"
        raise ValueError(msg) from exc

    metadata = metadata or {}
    if not isinstance(metadata, dict):
        msg = f"Frontmatter metadata is not a mapping: {type(metadata).__name__}"
        raise ValueError(msg)

    # Drop the line break that ends the closing delimiter.
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]

    record = {key: _plain(value) for key, value in metadata.items()}
    record["content"] = body
    return record


def slug_from_filename(name: str) -> str:
    for suffix in MARKDOWN_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name
