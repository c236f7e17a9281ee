"""Permalink and destination path derivation.

A permalink is the public URL path of a rendered page. It is computed from
the source path only, so it is stable across builds:

    articles/2020-01-02-my-post.md  ->  /articles/my-post/
    pages/about.html                ->  /about/
    pages/index.md                  ->  /
    pages/atom.xml                  ->  /atom.xml

The destination path is where the page is written under the build root.
"""

from __future__ import annotations

from pathlib import Path, PurePath, PurePosixPath

from .utils import DATE_PREFIX_RE

# Base names that keep their own file instead of becoming a bundle directory.
NON_BUNDLE_NAMES = frozenset({"index", "atom"})

PAGES_PREFIX = "/pages/"
INDEX_FILE = "index.html"


def _relative_posix(source: str | PurePath, root: Path | None) -> PurePosixPath:
    path = Path(source)
    if root is not None and path.is_absolute():
        path = path.relative_to(root)
    return PurePosixPath(path.as_posix())


def get_permalink(source: str | PurePath, root: Path | None = None) -> str:
    """Derive the canonical URL path for a source file.

    Args:
        source: Source path, relative to the project root. Absolute paths
            are accepted when ``root`` is given.
        root: Project root used to relativize absolute paths.

    Returns:
        URL path starting with ``/``. Bundle-style permalinks end in ``/``.
    """
    rel = _relative_posix(source, root)
    suffix = rel.suffix
    stem = DATE_PREFIX_RE.sub("", rel.stem, count=1)

    if stem not in NON_BUNDLE_NAMES:
        rel = rel.parent / stem / INDEX_FILE
    elif suffix == ".md":
        rel = rel.parent / f"{stem}.html"
    else:
        rel = rel.parent / f"{stem}{suffix}"

    permalink = "/" + rel.as_posix()
    if permalink.startswith(PAGES_PREFIX):
        permalink = "/" + permalink[len(PAGES_PREFIX) :]
    if permalink.endswith(INDEX_FILE):
        permalink = permalink[: -len(INDEX_FILE)]
    return permalink


def get_dest_path(permalink: str, build_root: Path) -> Path:
    """Return the output file for a permalink under ``build_root``.

    Args:
        permalink: URL path starting with ``/``.
        build_root: Build output directory.

    Returns:
        Concrete file path; directory-style permalinks map to index.html.
    """
    if permalink.endswith("/"):
        permalink += INDEX_FILE
    return build_root / permalink.lstrip("/")
