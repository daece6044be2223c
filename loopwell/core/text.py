"""Text helpers shared by the wiki, workspaces and the assistant."""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_HTML_TAG = re.compile(r"<[^>]*>")

EXCERPT_LENGTH = 200


def slugify(value: str) -> str:
    """Lowercase ``value`` and collapse every non-alphanumeric run into ``-``.

    >>> slugify("  Hello, World! ")
    'hello-world'
    """
    return _NON_ALNUM.sub("-", value.lower()).strip("-")


def make_excerpt(content: str | None, length: int = EXCERPT_LENGTH) -> str:
    """First ``length`` characters of ``content``, with ``...`` when truncated."""
    if not content:
        return ""
    if len(content) > length:
        return content[:length] + "..."
    return content


def strip_html(value: str) -> str:
    """Remove HTML tags, leaving the text content."""
    return _HTML_TAG.sub("", value)


def with_suffix(base: str, attempt: int) -> str:
    """``base`` for the first attempt, ``base-N`` afterwards."""
    return base if attempt == 0 else f"{base}-{attempt}"
