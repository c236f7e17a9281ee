"""Command-line interface for Inkwell.

This module defines the CLI commands using the Click framework. Each build
task is its own command; running ``inkwell`` with no command serves the site.

Commands:
- clean: Remove the build directory.
- js, less, static, pages: Run a single build task.
- build: Clean, then run every task.
- serve: Build, serve with live reload and rebuild on change.
- article: Create a new dated article interactively.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .config import Settings, load_config
from .errors import BuildError, BuildFailed, ConfigError, DestinationCollisionError
from .log import configure_logging
from .utils import slugify


@click.group(invoke_without_command=True)
@click.option(
    "--production/--development",
    default=None,
    help="Minify and fingerprint output (default: from INKWELL_ENV).",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.version_option(version=__version__, prog_name="inkwell")
@click.pass_context
def cli(ctx: click.Context, production: bool | None, verbose: bool):
    """Inkwell static site builder."""
    configure_logging(verbose)
    ctx.obj = {"production": production}
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


def _settings(ctx: click.Context) -> Settings:
    production = (ctx.obj or {}).get("production")
    try:
        return load_config(Path.cwd(), production=production)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None


def _report_errors(errors: list[BuildError], project_root: Path) -> None:
    """Print a user-friendly summary of per-file build errors."""
    noun = "file" if len(errors) == 1 else "files"
    click.echo(
        click.style(f"Build failed: {len(errors)} {noun}", fg="red", bold=True),
        err=True,
    )
    for error in errors:
        path = error.source_path
        if path.is_absolute():
            path = path.relative_to(project_root)
        click.echo(click.style(f"  File: {path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {error.message}", fg="white"), err=True)


def _run_pages_task(settings: Settings, full: bool) -> None:
    from .build import build_pages, build_site

    try:
        result = build_site(settings) if full else build_pages(settings)
    except BuildFailed as exc:
        _report_errors(exc.errors, settings.project_root)
        raise SystemExit(1) from None
    except DestinationCollisionError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        for dest, sources in exc.collisions.items():
            click.echo(click.style(f"  Output: {dest}", fg="yellow"), err=True)
            for source in sources:
                click.echo(f"    written by {source}", err=True)
        raise SystemExit(1) from None

    if not result.ok:
        _report_errors(result.errors, settings.project_root)
        raise SystemExit(1)
    click.echo(f"Built {len(result.pages)} pages into {result.build_root}")


@cli.command()
@click.pass_context
def clean(ctx: click.Context):
    """Remove the build directory."""
    from .build import clean as clean_build

    clean_build(_settings(ctx))


@cli.command()
@click.pass_context
def js(ctx: click.Context):
    """Build the script bundle."""
    from .assets import AssetPipeline

    AssetPipeline(_settings(ctx)).build_js()


@cli.command()
@click.pass_context
def less(ctx: click.Context):
    """Compile the stylesheet."""
    from .assets import AssetPipeline

    AssetPipeline(_settings(ctx)).build_less()


@cli.command()
@click.pass_context
def static(ctx: click.Context):
    """Copy static files into the build directory."""
    from .assets import AssetPipeline

    AssetPipeline(_settings(ctx)).copy_static()


@cli.command()
@click.pass_context
def pages(ctx: click.Context):
    """Render articles and pages."""
    _run_pages_task(_settings(ctx), full=False)


@cli.command()
@click.pass_context
def build(ctx: click.Context):
    """Clean, then run js, less, static and pages."""
    _run_pages_task(_settings(ctx), full=True)


@cli.command()
@click.option("-p", "--port", type=int, default=None, help="HTTP port (default 4000).")
@click.option(
    "-u", "--uiport", "ui_port", type=int, default=None, help="Status UI port."
)
@click.option(
    "--livereload-port", type=int, default=None, help="Live reload websocket port."
)
@click.pass_context
def serve(
    ctx: click.Context,
    port: int | None,
    ui_port: int | None,
    livereload_port: int | None,
):
    """Build, serve with live reload and rebuild on change."""
    from .server import DevServer

    server = DevServer(
        _settings(ctx), http_port=port, ws_port=livereload_port, ui_port=ui_port
    )
    server.start()


@cli.command()
@click.pass_context
def article(ctx: click.Context):
    """Create a new article interactively."""
    settings = _settings(ctx)
    articles_dir = settings.project_root / settings.articles_root

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    link = questionary.text(
        "External link (leave empty for a regular article):",
        style=_questionary_style(),
    ).ask()
    if link is None:
        raise click.Abort()
    link = link.strip()

    filename = f"{date.today().isoformat()}-{slugify(title)}.md"
    target = articles_dir / filename
    if target.exists():
        raise click.ClickException(
            f"File already exists: {target.relative_to(settings.project_root)}"
        )

    front_matter = {"title": title}
    if link:
        front_matter["link"] = link
    articles_dir.mkdir(parents=True, exist_ok=True)
    target.write_text(
        "---\n"
        + yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True)
        + "---\n\n",
        encoding="utf-8",
    )
    click.echo(f"Created {target.relative_to(settings.project_root)}")


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
