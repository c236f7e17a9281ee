"""Content processing for Inkwell.

This module turns source files into Page objects. It splits front matter,
computes permalinks, renders Markdown, and fills in the article fields
(date, excerpt, link) while collecting articles into the Site context that
listing templates read.

Key classes:
- SourceFile: A content file as read from disk.
- Page: Typed page metadata plus rendered content.
- Site: Per-build context holding global metadata and the article list.
- PassThroughFile: A file without front matter, copied unchanged.
- ContentRenderer: Batch transform from SourceFiles to Pages.

Rendering is a batch operation: every source is processed before any
template is rendered, because listing pages read ``site.articles``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any

from .collections import ArticleCollection
from .config import Settings
from .errors import BuildError, BuildFailed, ContentError, InkwellError
from .frontmatter import split_front_matter
from .html_utils import extract_excerpt, read_more_link
from .permalinks import PAGES_PREFIX, get_permalink
from .renderers import MarkdownRenderer
from .utils import find_date_in_name, is_markdown, is_under

logger = logging.getLogger(__name__)

# Front-matter keys that map onto Page attributes; everything else goes to meta.
EXPLICIT_FIELDS = ("permalink", "title", "date", "template", "link", "excerpt")


@dataclass(frozen=True)
class SourceFile:
    """A content file.

    Attributes:
        path: Path relative to the project root, in POSIX form.
        data: Raw bytes as read from disk.
    """

    path: PurePosixPath
    data: bytes

    @classmethod
    def read(cls, project_root: Path, path: Path) -> SourceFile:
        rel = path.relative_to(project_root) if path.is_absolute() else path
        return cls(
            path=PurePosixPath(rel.as_posix()),
            data=(project_root / rel).read_bytes(),
        )


@dataclass
class Page:
    """A page built from a source file with front matter.

    Attributes:
        source_path: Source file path relative to the project root.
        permalink: Public URL path.
        title: Page title from front matter.
        date: Publication date; ISO string when derived from the filename,
            otherwise whatever the front matter holds.
        template: Name of the layout template, None for the default.
        link: External link for link posts; the permalink for other articles.
        contents: Body after Markdown rendering.
        content: Body after the template pass.
        excerpt: Listing excerpt (articles only).
        meta: Remaining front-matter keys.
        explicit: Keys that were set by front matter.
    """

    source_path: PurePosixPath
    permalink: str
    title: str | None = None
    date: Any = None
    template: str | None = None
    link: str | None = None
    contents: str = ""
    content: str = ""
    excerpt: str = ""
    meta: dict[str, Any] = field(default_factory=dict)
    explicit: frozenset[str] = frozenset()

    @classmethod
    def from_front_matter(
        cls, source_path: PurePosixPath, permalink: str, metadata: dict[str, Any]
    ) -> Page:
        """Create a page from computed defaults and front matter.

        Explicit front-matter values win over computed defaults.
        """
        page = cls(
            source_path=source_path,
            permalink=permalink,
            meta={k: v for k, v in metadata.items() if k not in EXPLICIT_FIELDS},
            explicit=frozenset(k for k in EXPLICIT_FIELDS if k in metadata),
        )
        for key in page.explicit:
            setattr(page, key, metadata[key])
        return page

    def is_explicit(self, key: str) -> bool:
        return key in self.explicit

    def __getitem__(self, key: str) -> Any:
        if key in _PAGE_ATTRS:
            return getattr(self, key)
        return self.meta[key]

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default


_PAGE_ATTRS = frozenset(f.name for f in fields(Page))


@dataclass
class Site:
    """Per-build site context shared by all pages.

    Constructed once per build run and passed explicitly through the
    content and template stages.
    """

    title: str
    subtitle: str
    base_url: str
    timezone: str
    utc_offset: str
    build_time: datetime
    production: bool
    date_format: str
    articles: ArticleCollection = field(default_factory=ArticleCollection)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings) -> Site:
        data = dict(settings.site)
        build_time = data.pop("build_time", None)
        if isinstance(build_time, str):
            build_time = datetime.fromisoformat(build_time)
        if build_time is None:
            build_time = datetime.now(timezone.utc)
        return cls(
            title=str(data.pop("title", "")),
            subtitle=str(data.pop("subtitle", "") or ""),
            base_url=settings.base_url,
            timezone=str(data.pop("timezone", "")),
            utc_offset=str(data.pop("utc_offset")),
            build_time=build_time,
            production=settings.production,
            date_format=str(data.pop("date_format")),
            extra=data,
        )

    def __getitem__(self, key: str) -> Any:
        if key in _SITE_ATTRS:
            return getattr(self, key)
        return self.extra[key]


_SITE_ATTRS = frozenset(f.name for f in fields(Site))


@dataclass(frozen=True)
class PassThroughFile:
    """A content file without front matter, copied to the build unchanged.

    Attributes:
        source_path: Source path relative to the project root.
        target: Output path relative to the build root.
        data: File bytes.
    """

    source_path: PurePosixPath
    target: PurePosixPath
    data: bytes

    @classmethod
    def from_source(cls, source: SourceFile) -> PassThroughFile:
        url = "/" + source.path.as_posix()
        if url.startswith(PAGES_PREFIX):
            url = "/" + url[len(PAGES_PREFIX) :]
        return cls(
            source_path=source.path,
            target=PurePosixPath(url.lstrip("/")),
            data=source.data,
        )


@dataclass
class ContentBatch:
    """Everything the content stage produced for one build."""

    pages: list[Page] = field(default_factory=list)
    passthrough: list[PassThroughFile] = field(default_factory=list)
    errors: list[BuildError] = field(default_factory=list)


def collect_sources(settings: Settings) -> list[SourceFile]:
    """Read every file directly inside the configured content roots.

    Roots are read in configuration order and files within a root in name
    order, so date-prefixed articles arrive oldest first. Dotfiles and
    subdirectories are skipped.
    """
    sources: list[SourceFile] = []
    for root_name in settings.content_roots:
        root = settings.project_root / root_name
        if not root.is_dir():
            logger.debug("Content root %s does not exist; skipping", root)
            continue
        for path in sorted(root.iterdir()):
            if path.name.startswith(".") or not path.is_file():
                continue
            sources.append(SourceFile.read(settings.project_root, path))
    return sources


class ContentRenderer:
    """Turns SourceFiles into Pages and fills the Site's article list.

    Attributes:
        settings: Build settings.
        site: The per-build Site context that articles are added to.
        markdown: Markdown renderer.
    """

    def __init__(
        self,
        settings: Settings,
        site: Site,
        markdown: MarkdownRenderer | None = None,
    ):
        self.settings = settings
        self.site = site
        self.markdown = markdown or MarkdownRenderer()

    def render_all(
        self, sources: list[SourceFile], fail_fast: bool = False
    ) -> ContentBatch:
        """Process all sources in arrival order.

        Args:
            sources: Source files, oldest article first.
            fail_fast: Raise on the first failing file instead of recording
                the error and carrying on.

        Returns:
            ContentBatch with pages, pass-through files and per-file errors.

        Raises:
            BuildFailed: On the first error when fail_fast is set.
        """
        batch = ContentBatch()
        for source in sources:
            try:
                result = self.render(source)
            except Exception as exc:
                error = _wrap_error(source.path, exc)
                if fail_fast:
                    raise BuildFailed([error]) from exc
                logger.error("%s", error)
                batch.errors.append(error)
                continue
            if isinstance(result, Page):
                batch.pages.append(result)
            else:
                batch.passthrough.append(result)
        return batch

    def render(self, source: SourceFile) -> Page | PassThroughFile:
        """Process one source file.

        Raises:
            FrontMatterError: If the front matter is malformed.
            ContentError: If the content cannot be rendered.
        """
        try:
            text = source.data.decode("utf-8")
        except UnicodeDecodeError:
            # binary files cannot carry front matter
            return PassThroughFile.from_source(source)

        split = split_front_matter(text)
        if not split.present:
            logger.debug("%s has no front matter; passing through", source.path)
            return PassThroughFile.from_source(source)

        page = Page.from_front_matter(
            source.path, get_permalink(source.path), split.metadata or {}
        )
        contents = split.body
        if is_markdown(source.path):
            try:
                contents = self.markdown.render(contents)
            except Exception as exc:
                raise ContentError(f"Markdown rendering failed: {exc}") from exc
        page.contents = contents

        if is_under(source.path, self.settings.articles_root):
            self._apply_article_fields(page)
            self.site.articles.prepend(page)

        logger.debug("Rendered %s -> %s", source.path, page.permalink)
        return page

    def _apply_article_fields(self, page: Page) -> None:
        if not page.is_explicit("date"):
            day = find_date_in_name(page.source_path.stem)
            if day is None:
                raise ContentError(
                    "Article has no date: add a 'date' field or a "
                    "YYYY-MM-DD prefix to the filename"
                )
            page.date = f"{day}T00:00:00{self.site.utc_offset}"

        page.template = self.settings.article_template

        external = bool(page.link)
        if not page.is_explicit("excerpt"):
            page.excerpt = page.contents if external else extract_excerpt(page.contents)
        page.excerpt = str(page.excerpt) + read_more_link(
            page.permalink, page.title, external
        )

        if not external:
            page.link = page.permalink


def _wrap_error(source_path: PurePosixPath, exc: Exception) -> BuildError:
    if isinstance(exc, BuildError):
        return exc
    if isinstance(exc, InkwellError):
        message = str(exc)
    else:
        message = f"{type(exc).__name__}: {exc}"
    return BuildError(Path(source_path), message, exc)
