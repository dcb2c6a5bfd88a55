"""Text cleanup utilities shared by scrapers, the normalizer and the feed builder."""

import re
from urllib.parse import urljoin, urlparse

from bs4 import Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

_WS_RE = re.compile(r"\s+")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_BLANK_LINES_RE = re.compile(r"\n\s*\n")


def clean_text(text: str | None) -> str:
    """
    Collapse runs of whitespace into single spaces and strip the ends.

    Args:
        text: Raw text scraped from a page (may be None)

    Returns:
        Cleaned single-line text ("" for None)
    """
    if not text:
        return ""
    text = _CONTROL_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def clean_paragraphs(text: str | None) -> str:
    """
    Clean multi-paragraph text, keeping blank-line paragraph breaks.

    Each paragraph is collapsed with ``clean_text``; empty paragraphs vanish.
    Single newlines inside a paragraph become spaces.

    Examples:
        "  First  line\\n  continued\\n\\n\\nSecond " → "First line continued\\n\\nSecond"
    """
    if not text:
        return ""
    paragraphs = [clean_text(p) for p in _BLANK_LINES_RE.split(text)]
    return "\n\n".join(p for p in paragraphs if p)


def tag_text(tag: Tag) -> str:
    """Get clean text from a tag, joining child strings with spaces."""
    return clean_text(tag.get_text(separator=" "))


def text_lines(tag: Tag) -> list[str]:
    """Linearise a subtree into its non-empty text nodes, in document order."""
    lines = []
    for s in tag.find_all(string=True):
        if isinstance(s, (Comment, Declaration, Doctype, ProcessingInstruction)):
            continue
        if s.parent is not None and s.parent.name in ("script", "style", "noscript"):
            continue
        cleaned = clean_text(str(s))
        if cleaned:
            lines.append(cleaned)
    return lines


def absolute_url(base: str, href: str | None) -> str | None:
    """
    Resolve a possibly-relative link against a base URL.

    Returns None for empty links and for anything that does not resolve to
    an http(s) URL (``javascript:``, ``mailto:``, data URIs...).
    """
    if not href:
        return None
    href = href.strip()
    if not href:
        return None
    resolved = urljoin(base, href)
    if urlparse(resolved).scheme not in ("http", "https"):
        return None
    return resolved


def is_absolute_http_url(url: str | None) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def split_names(text: str | None) -> tuple[str, ...]:
    """
    Split a comma-separated list of people into an ordered tuple.

    Examples:
        "Toni Servillo, Anna Ferzetti , " → ("Toni Servillo", "Anna Ferzetti")
    """
    if not text:
        return ()
    return tuple(name for name in (clean_text(part) for part in text.split(",")) if name)


def strip_label(text: str, label: str) -> str:
    """
    Remove a leading "Label:" (case-insensitive) from a line.

    Examples:
        strip_label("REGIA: Paolo Sorrentino", "regia") → "Paolo Sorrentino"
    """
    m = re.match(rf"^\s*{re.escape(label)}\s*:?\s*", text, re.IGNORECASE)
    return text[m.end():].strip() if m else text.strip()
