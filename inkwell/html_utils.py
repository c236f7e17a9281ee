"""HTML utility functions for Inkwell.

String-level HTML helpers: escaping, article excerpt extraction and
minification of rendered pages.

Functions:
    escape_html: Escape special HTML characters in a string.
    first_paragraph: Return the first ``<p>`` element of an HTML fragment.
    strip_footnote_refs: Remove footnote reference markers.
    unlink_anchors: Replace ``<a>`` elements by their text.
    extract_excerpt: First paragraph with footnotes and links removed.
    read_more_link: Call-to-action paragraph appended to excerpts.
    minify_html: Collapse whitespace in a rendered page.
"""

from __future__ import annotations

import re

import minify_html as _minify_html

_FOOTNOTE_REF_RE = re.compile(
    r"<sup\b[^>]*\bclass=\"footnote-ref\"[^>]*>.*?</sup>", re.DOTALL
)
_ANCHOR_RE = re.compile(r"<a\b[^>]*>(.*?)</a>", re.DOTALL)

PARAGRAPH_OPEN = "<p>"
PARAGRAPH_CLOSE = "</p>"


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def first_paragraph(html: str) -> str:
    """Return the text from the first ``<p>`` to its closing ``</p>``, inclusive.

    Returns an empty string when the fragment has no complete paragraph.
    """
    start = html.find(PARAGRAPH_OPEN)
    if start == -1:
        return ""
    end = html.find(PARAGRAPH_CLOSE, start)
    if end == -1:
        return ""
    return html[start : end + len(PARAGRAPH_CLOSE)]


def strip_footnote_refs(html: str) -> str:
    """Remove ``<sup class="footnote-ref">`` markers."""
    return _FOOTNOTE_REF_RE.sub("", html)


def unlink_anchors(html: str) -> str:
    """Replace every ``<a ...>text</a>`` by ``text``."""
    return _ANCHOR_RE.sub(r"\1", html)


def extract_excerpt(html: str) -> str:
    """Build an article excerpt from rendered HTML.

    The excerpt is the first paragraph with footnote references stripped and
    links flattened to their text, so it can be embedded in a listing without
    dangling footnotes or nested links.

    Examples:
        >>> extract_excerpt('<p>Hi <a href="/x">there</a></p><p>more</p>')
        '<p>Hi there</p>'
    """
    return unlink_anchors(strip_footnote_refs(first_paragraph(html)))


def read_more_link(permalink: str, title: object, external: bool) -> str:
    """Return the call-to-action paragraph appended to an excerpt.

    Args:
        permalink: The article's own URL.
        title: Article title, used for the link's title attribute. YAML may
            hand over a number or date; it is converted to text.
        external: True for link posts, which get "Permalink" as the label.
    """
    label = "Permalink" if external else "Read More…"
    return (
        f'<p><a href="{escape_html(permalink)}" '
        f'title="{escape_html("" if title is None else str(title))}">{label}</a></p>'
    )


def minify_html(html: str) -> str:
    """Minify a rendered HTML document, including inline scripts.

    Closing tags are kept so the output stays valid for feed readers and
    strict parsers.
    """
    return _minify_html.minify(
        html,
        minify_js=True,
        minify_css=True,
        keep_closing_tags=True,
        keep_html_and_head_opening_tags=True,
    )
