"""Asset tasks for Inkwell.

This module implements the ``js``, ``less`` and ``static`` build tasks:

- js: copies the script entry to ``assets/js/`` (minified in production).
- less: compiles the stylesheet entry to ``assets/css/`` (minified in
  production, with a source map in development).
- static: copies everything under ``static/`` to the build root, dotfiles
  included, optimizing images in production.

Production builds also fingerprint the compiled script and stylesheet and
record the built names in the asset manifest for ``asset_url``.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from .asset_processors import (
    JSProcessor,
    LessProcessor,
    create_static_registry,
)
from .asset_resolver import AssetManifest
from .config import Settings
from .utils import content_hash

logger = logging.getLogger(__name__)

JS_DIR = "assets/js"
CSS_DIR = "assets/css"


class AssetPipeline:
    """Runs the asset tasks for one project.

    Attributes:
        settings: Build settings.
        build_root: Directory where processed assets are written.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.build_root = settings.build_root

    def run(self) -> None:
        """Run js, less and static."""
        self.build_js()
        self.build_less()
        self.copy_static()

    def build_js(self) -> Path | None:
        """Build the script entry. Returns the written file, if any."""
        source = self.settings.project_root / self.settings.js_entry
        if not source.exists():
            logger.info("No script entry at %s; skipping js", self.settings.js_entry)
            return None
        logical = f"{JS_DIR}/{source.name}"
        processor = JSProcessor(self.settings.production)
        processor.process(source, self.build_root / logical)
        return self._record(logical)

    def build_less(self) -> Path | None:
        """Build the stylesheet entry. Returns the written file, if any."""
        source = self.settings.project_root / self.settings.less_entry
        if not source.exists():
            logger.info(
                "No stylesheet entry at %s; skipping less", self.settings.less_entry
            )
            return None
        logical = f"{CSS_DIR}/{source.stem}.css"
        processor = LessProcessor(self.settings.project_root, self.settings.production)
        processor.process(source, self.build_root / logical)
        return self._record(logical)

    def copy_static(self) -> int:
        """Copy the static tree into the build root. Returns the file count."""
        static_root = self.settings.static_path
        if not static_root.exists():
            return 0
        registry = create_static_registry(self.settings.production)
        count = 0
        for item in sorted(static_root.rglob("*")):
            if item.is_dir():
                continue
            rel = item.relative_to(static_root)
            registry.process(item, self.build_root / rel)
            count += 1
        logger.info("Copied %d static files", count)
        return count

    def _record(self, logical: str) -> Path:
        """Fingerprint a built asset in production and update the manifest."""
        manifest = AssetManifest.load(self.build_root)
        built = self.build_root / logical
        if self.settings.production:
            digest = content_hash(built.read_bytes())
            rel = PurePosixPath(logical)
            fingerprinted = rel.with_name(f"{rel.stem}.{digest}{rel.suffix}")
            target = self.build_root / fingerprinted
            built.replace(target)
            manifest.add(logical, fingerprinted.as_posix())
            built = target
        else:
            manifest.discard(logical)
        manifest.save()
        logger.info("Built %s", built.relative_to(self.build_root))
        return built
