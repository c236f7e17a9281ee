"""Markdown rendering for Inkwell.

Markdown is rendered with mistune. Raw HTML in the source is kept, tables,
footnotes, strikethrough and bare URLs are enabled, fenced code blocks with a
language hint are highlighted with Pygments and headings from level 2 down
get an ``id`` plus a clickable ``header-anchor`` link.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML.
"""

from __future__ import annotations

import logging
import re

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html

logger = logging.getLogger(__name__)

MARK_RE = re.compile(r"\*\*(.+?)\*\*")
ANCHOR_LEVEL = 2
ANCHOR_SYMBOL = "¶"
PLUGINS = ["strikethrough", "footnotes", "table", "url"]


def generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text (may contain inline HTML).

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _AnchoredHTMLRenderer(mistune.HTMLRenderer):
    """mistune renderer with heading anchors and code highlighting."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        if level < ANCHOR_LEVEL:
            return f"<h{level}>{text}</h{level}>\n"

        base_id = generate_heading_id(text) or "section"
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        return (
            f'<h{level} id="{heading_id}">{text} '
            f'<a class="header-anchor" href="#{heading_id}" aria-hidden="true">'
            f"{ANCHOR_SYMBOL}</a></h{level}>\n"
        )

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info and info.strip() else None
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                logger.debug("No Pygments lexer for %r; rendering plain code", lang)
            else:
                formatter = HtmlFormatter(cssclass="highlight")
                return highlight(code, lexer, formatter)
        # **text** marks a highlighted span inside plain code blocks
        marked = MARK_RE.sub(r"<mark>\1</mark>", escape_html(code))
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{marked}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    A fresh mistune parser is created per document so heading ids and
    footnote numbering never leak between files.
    """

    source_type = "markdown"

    def render(self, content: str) -> str:
        """Render Markdown source to an HTML fragment.

        Args:
            content: Markdown source (front matter already removed).

        Returns:
            Rendered HTML.
        """
        markdown = mistune.create_markdown(
            renderer=_AnchoredHTMLRenderer(), plugins=PLUGINS
        )
        return markdown(content)
