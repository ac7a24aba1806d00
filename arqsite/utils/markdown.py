"""Small Markdown <-> HTML converters for blog content.

Covers what the admin editor produces: headings, paragraphs, bold/italic,
links, inline and fenced code, lists, blockquotes and horizontal rules.
Source text is HTML-escaped before conversion, so raw tags in Markdown
render as text. Links keep only http(s), mailto and relative targets.
"""

from __future__ import annotations

import html
import re

_PLACEHOLDER = "\x00{}\x00"
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")

_FENCED_CODE_RE = re.compile(r"```(\w*)\n(.*?)```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")
_HR_RE = re.compile(r"^(?:---|\*\*\*)$", re.MULTILINE)
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)
_BLOCKQUOTE_RE = re.compile(r"^&gt;\s+(.+)$", re.MULTILINE)
_UL_ITEM_RE = re.compile(r"^[*-]\s+(.+)$", re.MULTILINE)
_OL_ITEM_RE = re.compile(r"^\d+\.\s+(.+)$", re.MULTILINE)
_UL_RUN_RE = re.compile(r"(?:<li>.*</li>\n?)+")
_OL_RUN_RE = re.compile(r"(?:<oli>.*</oli>\n?)+")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_SCHEME_RE = re.compile(r"^([a-z][a-z0-9+.-]*):", re.IGNORECASE)
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_SAFE_SCHEMES = frozenset({"http", "https", "mailto"})

_EMPHASIS_RULES = (
    (re.compile(r"\*\*\*(.+?)\*\*\*"), r"<strong><em>\1</em></strong>"),
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"(?<!\w)___(.+?)___(?!\w)"), r"<strong><em>\1</em></strong>"),
    (re.compile(r"(?<!\w)__(.+?)__(?!\w)"), r"<strong>\1</strong>"),
    (re.compile(r"(?<!\w)_(.+?)_(?!\w)"), r"<em>\1</em>"),
)

_BLOCK_PREFIXES = ("<h", "<p", "<ul", "<ol", "<pre", "<blockquote", "<hr", "<div")


def _emphasis(text: str) -> str:
    for pattern, replacement in _EMPHASIS_RULES:
        text = pattern.sub(replacement, text)
    return text


def safe_href(url: str) -> str | None:
    """Return ``url`` escaped for an ``href`` attribute, or None for unsafe schemes.

    ``url`` is taken as it appears in escaped Markdown text.
    """
    url = _CONTROL_RE.sub("", html.unescape(url))
    scheme = _SCHEME_RE.match(url)
    if scheme and scheme.group(1).lower() not in _SAFE_SCHEMES:
        return None
    return html.escape(url, quote=True)


def _restore(text: str, stash: list[str], limit: int) -> str:
    # A fragment only refers to fragments stashed before it
    def fragment(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= limit:
            return match.group(0)
        return _restore(stash[index], stash, index)

    return _PLACEHOLDER_RE.sub(fragment, text)


def markdown_to_html(markdown: str) -> str:
    """Render Markdown to HTML. Empty input gives an empty string."""
    if not markdown:
        return ""

    stash: list[str] = []

    def keep(fragment: str) -> str:
        stash.append(fragment)
        return _PLACEHOLDER.format(len(stash) - 1)

    def link(match: re.Match[str]) -> str:
        href = safe_href(match.group(2))
        if href is None:
            return match.group(1)
        return keep(f'<a href="{href}">{_emphasis(match.group(1))}</a>')

    # NUL is reserved for placeholders
    text = html.escape(markdown.replace("\r\n", "\n").replace("\x00", ""), quote=False)

    # Code is stashed first so no other rule rewrites its contents
    text = _FENCED_CODE_RE.sub(
        lambda m: keep(
            f'<pre><code class="language-{m.group(1) or "text"}">{m.group(2).strip()}</code></pre>'
        ),
        text,
    )
    text = _INLINE_CODE_RE.sub(lambda m: keep(f"<code>{m.group(1)}</code>"), text)

    text = _HR_RE.sub("<hr>", text)
    text = _HEADING_RE.sub(lambda m: f"<h{len(m.group(1))}>{m.group(2).strip()}</h{len(m.group(1))}>", text)

    text = _BLOCKQUOTE_RE.sub(r"<blockquote>\1</blockquote>", text)
    text = text.replace("</blockquote>\n<blockquote>", "\n")

    text = _UL_ITEM_RE.sub(r"<li>\1</li>", text)
    text = _UL_RUN_RE.sub(lambda m: f"<ul>{m.group(0)}</ul>", text)
    text = _OL_ITEM_RE.sub(r"<oli>\1</oli>", text)
    text = _OL_RUN_RE.sub(
        lambda m: "<ol>" + m.group(0).replace("<oli>", "<li>").replace("</oli>", "</li>") + "</ol>",
        text,
    )

    text = _LINK_RE.sub(link, text)
    text = _emphasis(text)

    blocks = []
    for block in re.split(r"\n\n+", text):
        block = block.strip()
        if not block:
            continue
        stashed = _PLACEHOLDER_RE.fullmatch(block)
        is_code_block = (
            stashed is not None
            and int(stashed.group(1)) < len(stash)
            and stash[int(stashed.group(1))].startswith("<pre")
        )
        if block.startswith(_BLOCK_PREFIXES) or is_code_block:
            blocks.append(block)
        else:
            blocks.append("<p>" + block.replace("\n", "<br>") + "</p>")

    return _restore("\n".join(blocks), stash, len(stash))


_HTML_RULES = (
    (re.compile(r"<h([1-6])[^>]*>(.*?)</h\1>", re.IGNORECASE), lambda m: "#" * int(m.group(1)) + f" {m.group(2)}\n\n"),
    (re.compile(r"<strong><em>(.*?)</em></strong>", re.IGNORECASE), r"***\1***"),
    (re.compile(r"<strong>(.*?)</strong>", re.IGNORECASE), r"**\1**"),
    (re.compile(r"<em>(.*?)</em>", re.IGNORECASE), r"*\1*"),
    (re.compile(r"<b>(.*?)</b>", re.IGNORECASE), r"**\1**"),
    (re.compile(r"<i>(.*?)</i>", re.IGNORECASE), r"*\1*"),
    (re.compile(r'<a[^>]*href="([^"]*)"[^>]*>(.*?)</a>', re.IGNORECASE), r"[\2](\1)"),
)
_LI_RE = re.compile(r"<li[^>]*>(.*?)</li>", re.IGNORECASE)
_UL_RE = re.compile(r"<ul[^>]*>(.*?)</ul>", re.IGNORECASE | re.DOTALL)
_OL_RE = re.compile(r"<ol[^>]*>(.*?)</ol>", re.IGNORECASE | re.DOTALL)
_PRE_RE = re.compile(r"<pre><code[^>]*>(.*?)</code></pre>", re.IGNORECASE | re.DOTALL)
_CODE_RE = re.compile(r"<code>(.*?)</code>", re.IGNORECASE)
_QUOTE_RE = re.compile(r"<blockquote[^>]*>(.*?)</blockquote>", re.IGNORECASE | re.DOTALL)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_P_RE = re.compile(r"<p[^>]*>(.*?)</p>", re.IGNORECASE | re.DOTALL)
_HR_TAG_RE = re.compile(r"<hr\s*/?>", re.IGNORECASE)
_ANY_TAG_RE = re.compile(r"<[^>]+>")


def _ordered_items(match: re.Match[str]) -> str:
    items = _LI_RE.findall(match.group(1))
    return "".join(f"{index}. {item}\n" for index, item in enumerate(items, start=1))


def html_to_markdown(source: str) -> str:
    """Convert stored HTML back to Markdown for editing."""
    if not source:
        return ""

    md = source
    for pattern, replacement in _HTML_RULES:
        md = pattern.sub(replacement, md)

    md = _UL_RE.sub(lambda m: _LI_RE.sub(r"- \1\n", m.group(1)), md)
    md = _OL_RE.sub(_ordered_items, md)

    md = _PRE_RE.sub(lambda m: f"```\n{m.group(1)}\n```\n\n", md)
    md = _CODE_RE.sub(r"`\1`", md)
    md = _QUOTE_RE.sub(r"> \1\n\n", md)

    md = _BR_RE.sub("\n", md)
    md = _P_RE.sub(r"\1\n\n", md)
    md = _HR_TAG_RE.sub("---\n\n", md)

    md = _ANY_TAG_RE.sub("", md)
    md = html.unescape(md)

    return re.sub(r"\n{3,}", "\n\n", md).strip()
