import re
import unicodedata

_TAG_RE = re.compile(r"<[^>]*>")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_SEP_RE = re.compile(r"[\s_-]+")


def normalize_text(text: str) -> str:
    """Normalize text by standardizing line breaks and whitespace.

    Converts different line break formats to standard newlines,
    collapses multiple spaces/tabs into single spaces, and reduces
    excessive blank lines.

    Args:
        text: Raw text to normalize.

    Returns:
        str: Normalized and trimmed text.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def strip_markup(text: str) -> str:
    """Remove HTML tags from user-submitted text and normalize whitespace."""
    return normalize_text(_TAG_RE.sub("", text))


def slugify(value: str) -> str:
    """Build a URL slug from a title ("Hello, World!" -> "hello-world")."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = _SLUG_STRIP_RE.sub("", value.lower())
    return _SLUG_SEP_RE.sub("-", value).strip("-")


def word_count(html_or_text: str) -> int:
    """Count whitespace-separated words after dropping tags."""
    return len(_TAG_RE.sub("", html_or_text).split())


def truncate_words(text: str | None, max_length: int) -> str:
    """Shorten ``text`` to ``max_length`` characters at a word boundary, adding "..."."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    cut = text[:max_length]
    last_space = cut.rfind(" ")
    return (cut[:last_space] if last_space > 0 else cut) + "..."
