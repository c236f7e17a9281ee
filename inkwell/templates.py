"""Template rendering engine for Inkwell.

Pages are rendered with Jinja2 in two passes: first the page body itself is
treated as a template (so articles and pages may use template syntax), then
the named layout template from the templates directory wraps it. Both passes
see the same two objects, ``site`` and ``page``.

Key classes:
- TemplateEngine: Renders pages into OutputFiles.
- RenderResult: Either an OutputFile or a BuildError for one page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
    UndefinedError,
)

from .asset_resolver import AssetManifest
from .config import Settings
from .content import Page, Site
from .errors import BuildError
from .permalinks import get_dest_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputFile:
    """A file to be written to the build directory.

    Attributes:
        path: Absolute destination path.
        data: File contents.
        source_path: Source file it was produced from.
    """

    path: Path
    data: bytes
    source_path: PurePosixPath


@dataclass(frozen=True)
class RenderResult:
    """Outcome of rendering one page."""

    source_path: PurePosixPath
    output: OutputFile | None = None
    error: BuildError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def to_datetime(value: Any) -> datetime:
    """Coerce an ISO string, date or datetime to a datetime.

    Raises:
        ValueError: If a string is not ISO-8601.
        TypeError: For any other type.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    raise TypeError(f"Cannot interpret {value!r} as a date")


def format_date(value: Any, fmt: str) -> str:
    """Format a date in UTC with strftime.

    ``%-d`` and ``%-m`` (day and month without padding) are supported on
    every platform.
    """
    moment = to_datetime(value)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    fmt = fmt.replace("%-d", str(moment.day)).replace("%-m", str(moment.month))
    return moment.strftime(fmt)


def isoformat(value: Any) -> str:
    """Return an ISO-8601 timestamp for feeds and ``<time datetime>``."""
    if isinstance(value, str):
        return value
    return to_datetime(value).isoformat()


def _format_error_message(exc: Exception) -> str:
    """Format a rendering exception into a user-friendly message."""
    if isinstance(exc, TemplateNotFound):
        return f"Template not found: {exc.name}"
    if isinstance(exc, TemplateSyntaxError):
        where = f" in {exc.name}" if exc.name else ""
        return f"Template syntax error{where} on line {exc.lineno}: {exc.message}"
    if isinstance(exc, UndefinedError):
        return f"Undefined variable: {exc}"
    return f"{type(exc).__name__}: {exc}"


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        settings: Build settings.
        site: Site context shared by every page.
        manifest: Asset manifest backing ``asset_url``/``inline_asset``.
        env: Jinja2 environment over the templates directory.
    """

    def __init__(
        self,
        settings: Settings,
        site: Site,
        manifest: AssetManifest | None = None,
    ):
        self.settings = settings
        self.site = site
        self.manifest = manifest or AssetManifest.load(settings.build_root)
        self.env = Environment(
            loader=FileSystemLoader(str(settings.templates_path)),
            autoescape=False,
            undefined=StrictUndefined if settings.strict_templates else Undefined,
            keep_trailing_newline=True,
        )
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.filters["date_format"] = self._date_format
        self.env.filters["isoformat"] = isoformat
        self.env.globals["asset_url"] = self.manifest.url
        self.env.globals["inline_asset"] = self.manifest.read

    def _date_format(self, value: Any, fmt: str | None = None) -> str:
        return format_date(value, fmt or self.site.date_format)

    def context(self, page: Page) -> dict[str, Any]:
        return {"site": self.site, "page": page}

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string against ``context``."""
        return self.env.from_string(template).render(**context)

    def render_page(self, page: Page) -> RenderResult:
        """Render one page to an output file.

        Errors never escape: they are returned in the RenderResult with the
        source path attached.
        """
        try:
            output = self._render(page)
        except Exception as exc:
            error = BuildError(Path(page.source_path), _format_error_message(exc), exc)
            return RenderResult(source_path=page.source_path, error=error)
        return RenderResult(source_path=page.source_path, output=output)

    def _render(self, page: Page) -> OutputFile:
        context = self.context(page)
        page.content = self.render_string(page.contents, context)
        template_name = page.template or self.settings.default_template
        rendered = self.env.get_template(template_name).render(**context)
        path = get_dest_path(page.permalink, self.settings.build_root)
        logger.debug("Rendered %s with %s -> %s", page.source_path, template_name, path)
        return OutputFile(
            path=path, data=rendered.encode("utf-8"), source_path=page.source_path
        )
