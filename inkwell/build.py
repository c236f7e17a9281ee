"""Site building for Inkwell.

This module drives the build tasks. The ``pages`` task reads every content
file, renders all of them to Pages (filling ``site.articles``), and only
then renders templates, because listing pages need the complete article
list. Output paths are checked for collisions before anything is written.

Key functions:
- clean: Remove the build directory.
- build_pages: The ``pages`` task.
- build_site: clean, then the asset tasks, then pages.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from .assets import AssetPipeline
from .config import Settings
from .content import ContentRenderer, Page, PassThroughFile, Site, collect_sources
from .errors import BuildError, BuildFailed, DestinationCollisionError
from .html_utils import minify_html
from .templates import OutputFile, TemplateEngine
from .utils import is_under, write_bytes

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a build.

    Attributes:
        site: The Site context used for the build.
        pages: Pages that rendered successfully.
        outputs: Files written to the build directory.
        errors: Per-file errors; the rest of the batch was still written.
        build_root: Directory the site was built into.
    """

    site: Site
    build_root: Path
    pages: list[Page] = field(default_factory=list)
    outputs: list[OutputFile] = field(default_factory=list)
    errors: list[BuildError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def clean(settings: Settings) -> None:
    """Remove the build directory."""
    if settings.build_root.exists():
        shutil.rmtree(settings.build_root)
        logger.info("Removed %s", settings.build_root)


def build_pages(settings: Settings, site: Site | None = None) -> BuildResult:
    """Render all articles and pages into the build directory.

    Args:
        settings: Build settings.
        site: Site context; a fresh one is created when None.

    Returns:
        BuildResult. Files that failed are listed in ``errors``.

    Raises:
        BuildFailed: On the first failing file when ``fail_fast`` is set.
        DestinationCollisionError: If two sources map to one output path and
            ``on_collision`` is ``error``. Nothing is written in that case.
    """
    site = site or Site.from_settings(settings)
    sources = collect_sources(settings)
    logger.debug("Collected %d content files", len(sources))

    batch = ContentRenderer(settings, site).render_all(
        sources, fail_fast=settings.fail_fast
    )

    # every source has been processed, so site.articles is complete
    engine = TemplateEngine(settings, site)
    result = BuildResult(site=site, build_root=settings.build_root)
    result.errors.extend(batch.errors)
    result.outputs.extend(
        _passthrough_output(settings, item) for item in batch.passthrough
    )

    # articles first, so a failed one leaves site.articles before any listing renders
    ordered = sorted(
        batch.pages, key=lambda p: not is_under(p.source_path, settings.articles_root)
    )
    for page in ordered:
        rendered = engine.render_page(page)
        if rendered.error is not None:
            if settings.fail_fast:
                raise BuildFailed([rendered.error]) from rendered.error.original_error
            logger.error("%s", rendered.error)
            result.errors.append(rendered.error)
            site.articles.discard(page)
            continue
        output = rendered.output
        if settings.production and output.path.suffix == ".html":
            output = _minified(output)
        result.outputs.append(output)
        result.pages.append(page)

    check_collisions(result.outputs, settings.on_collision)
    write_outputs(result.outputs)
    logger.info(
        "Wrote %d files (%d articles) into %s",
        len(result.outputs),
        len(site.articles),
        settings.build_root,
    )
    return result


def build_site(settings: Settings) -> BuildResult:
    """Run the full build: clean, js, less, static, pages."""
    clean(settings)
    settings.build_root.mkdir(parents=True, exist_ok=True)
    AssetPipeline(settings).run()
    return build_pages(settings)


def find_collisions(
    outputs: Iterable[OutputFile],
) -> dict[Path, list[PurePosixPath]]:
    """Return destinations written by more than one source."""
    seen: dict[Path, list[PurePosixPath]] = {}
    for output in outputs:
        seen.setdefault(output.path, []).append(output.source_path)
    return {dest: sources for dest, sources in seen.items() if len(sources) > 1}


def check_collisions(outputs: Iterable[OutputFile], mode: str) -> None:
    """Detect destination collisions.

    Args:
        outputs: Files about to be written.
        mode: ``error`` to raise, ``warn`` to log (the last write wins).

    Raises:
        DestinationCollisionError: In ``error`` mode when collisions exist.
    """
    collisions = find_collisions(outputs)
    if not collisions:
        return
    if mode == "error":
        raise DestinationCollisionError(
            {dest: [Path(s) for s in sources] for dest, sources in collisions.items()}
        )
    for dest, sources in collisions.items():
        logger.warning(
            "%s is written by %s; keeping %s",
            dest,
            ", ".join(str(s) for s in sources),
            sources[-1],
        )


def write_outputs(outputs: Iterable[OutputFile]) -> None:
    for output in outputs:
        write_bytes(output.path, output.data)


def _passthrough_output(settings: Settings, item: PassThroughFile) -> OutputFile:
    return OutputFile(
        path=settings.build_root / item.target,
        data=item.data,
        source_path=item.source_path,
    )


def _minified(output: OutputFile) -> OutputFile:
    html = minify_html(output.data.decode("utf-8"))
    return OutputFile(
        path=output.path, data=html.encode("utf-8"), source_path=output.source_path
    )
