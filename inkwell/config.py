"""Configuration loading for Inkwell.

Settings come from built-in defaults, overridden by an optional
``inkwell.yaml`` at the project root. The production flag is taken from the
``INKWELL_ENV`` environment variable unless the caller passes it explicitly.

Key names:
- Settings: Resolved configuration for one build run.
- load_config: Build Settings from a project directory.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_FILENAME = "inkwell.yaml"
ENV_VAR = "INKWELL_ENV"

DEST = "build"
PORT = 4000
LIVERELOAD_PORT = 35729
UI_PORT = 3001
DATE_FORMAT = "%-d %B %Y"

DEFAULT_SITE: dict[str, Any] = {
    "title": "Inkwell",
    "subtitle": "",
    "url": "",
    "timezone": "America/Phoenix",
    "utc_offset": "-07:00",
    "date_format": DATE_FORMAT,
}

DEFAULT_CONFIG: dict[str, Any] = {
    "dest": DEST,
    "port": PORT,
    "livereload_port": LIVERELOAD_PORT,
    "ui_port": UI_PORT,
    "content_roots": ["articles", "pages"],
    "articles_root": "articles",
    "templates_dir": "templates",
    "static_dir": "static",
    "js_entry": "assets/js/app.js",
    "less_entry": "assets/css/main.less",
    "default_template": "page.html",
    "article_template": "article.html",
    "fail_fast": False,
    "on_collision": "error",
    "strict_templates": False,
}

COLLISION_MODES = ("error", "warn")
UTC_OFFSET_RE = re.compile(r"^[+-]\d{2}:\d{2}$")


@dataclass
class Settings:
    """Resolved configuration for one build run.

    Attributes:
        project_root: Directory containing the site sources.
        production: Minify, fingerprint and optimise when True.
        site: Global site metadata (title, url, timezone, ...).
    """

    project_root: Path
    production: bool = False
    dest: str = DEST
    port: int = PORT
    livereload_port: int = LIVERELOAD_PORT
    ui_port: int = UI_PORT
    content_roots: list[str] = field(default_factory=lambda: ["articles", "pages"])
    articles_root: str = "articles"
    templates_dir: str = "templates"
    static_dir: str = "static"
    js_entry: str = "assets/js/app.js"
    less_entry: str = "assets/css/main.less"
    default_template: str = "page.html"
    article_template: str = "article.html"
    fail_fast: bool = False
    on_collision: str = "error"
    strict_templates: bool = False
    site: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SITE))

    @property
    def build_root(self) -> Path:
        return self.project_root / self.dest

    @property
    def templates_path(self) -> Path:
        return self.project_root / self.templates_dir

    @property
    def static_path(self) -> Path:
        return self.project_root / self.static_dir

    @property
    def base_url(self) -> str:
        """Public site URL in production, the dev server otherwise."""
        if self.production:
            return str(self.site.get("url") or "").rstrip("/")
        return f"http://localhost:{self.port}"

    @property
    def source_maps(self) -> bool:
        return not self.production


def production_from_env() -> bool:
    """Return True when ``INKWELL_ENV`` is set to ``production``."""
    return os.environ.get(ENV_VAR, "").strip().lower() == "production"


def load_config(project_root: Path, production: bool | None = None) -> Settings:
    """Load settings from inkwell.yaml, with defaults applied.

    Args:
        project_root: Root directory of the project.
        production: Force the production flag; read from the environment
            when None.

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If the file is malformed or a value is invalid.
    """
    config = {
        key: list(value) if isinstance(value, list) else value
        for key, value in DEFAULT_CONFIG.items()
    }
    site = dict(DEFAULT_SITE)
    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"{config_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path}: expected a mapping at top level")
        loaded_site = loaded.pop("site", None) or {}
        if not isinstance(loaded_site, dict):
            raise ConfigError(f"{config_path}: 'site' must be a mapping")
        site.update(loaded_site)
        unknown = sorted(set(loaded) - set(DEFAULT_CONFIG))
        if unknown:
            raise ConfigError(f"{config_path}: unknown keys: {', '.join(unknown)}")
        config.update(loaded)

    if production is None:
        production = production_from_env()

    settings = Settings(
        project_root=project_root,
        production=production,
        site=site,
        **config,
    )
    _validate(settings)
    return settings


def _validate(settings: Settings) -> None:
    if settings.on_collision not in COLLISION_MODES:
        raise ConfigError(
            f"on_collision must be one of {', '.join(COLLISION_MODES)}, "
            f"got {settings.on_collision!r}"
        )
    offset = settings.site.get("utc_offset", "")
    if isinstance(offset, int) and not isinstance(offset, bool):
        # YAML 1.1 reads an unquoted -7:00 as base-60 minutes (-420)
        sign = "-" if offset < 0 else "+"
        hours, minutes = divmod(abs(offset), 60)
        offset = f"{sign}{hours:02d}:{minutes:02d}"
        settings.site["utc_offset"] = offset
    if not UTC_OFFSET_RE.match(str(offset)):
        raise ConfigError(f"site.utc_offset must look like -07:00, got {offset!r}")
    for key in ("port", "livereload_port", "ui_port"):
        value = getattr(settings, key)
        if isinstance(value, bool) or not isinstance(value, int) or not 0 < value < 65536:
            raise ConfigError(f"{key} must be a TCP port number, got {value!r}")
    if not settings.content_roots:
        raise ConfigError("content_roots must name at least one directory")
