"""Front-matter splitting for Inkwell.

Content files may start with a YAML block delimited by ``---`` lines:

    ---
    title: Hello
    link: https://example.com
    ---
    Body text.

The block is optional. A file without one has no page metadata and is
passed through to the output unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import yaml

from .errors import FrontMatterError

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


@dataclass(frozen=True)
class FrontMatter:
    """Result of splitting a file.

    Attributes:
        metadata: Parsed key/value mapping, or None when the file has no
            front-matter block.
        body: Content after the block (the whole text when there is none).
    """

    metadata: dict[str, Any] | None
    body: str

    @property
    def present(self) -> bool:
        return self.metadata is not None


def split_front_matter(text: str) -> FrontMatter:
    """Separate the YAML front matter from the body.

    Args:
        text: Raw file content.

    Returns:
        FrontMatter with the parsed mapping and the remaining body.

    Raises:
        FrontMatterError: If the block is not valid YAML or not a mapping.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    match = FRONTMATTER_RE.match(text)
    if not match:
        return FrontMatter(metadata=None, body=text)
    try:
        data = yaml.safe_load(match.group("yaml"))
    except yaml.YAMLError as exc:
        raise FrontMatterError(f"Invalid front matter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontMatterError(
            f"Front matter must be a mapping, got {type(data).__name__}"
        )
    return FrontMatter(metadata=data, body=text[match.end() :])
