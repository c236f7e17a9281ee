"""Asset processors for Inkwell.

Each processor handles one kind of asset file and writes it to its
destination. Minification and optimisation only happen in production
builds; development builds keep files readable and emit source maps where
the tool supports them.

Key classes:
- LessProcessor: Compiles LESS with ``lessc``, minifies with csscompressor.
- JSProcessor: Minifies JavaScript with rjsmin.
- ImageProcessor: Re-encodes images with Pillow.
- StaticAssetProcessor: Copies files unchanged.
- AssetProcessorRegistry: Picks the processor for a file.
- find_executable: Locates external tools such as ``lessc``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

import csscompressor
import rjsmin
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def find_executable(name: str, project_root: Path | None = None) -> str | None:
    """Locate a command on PATH, then in the project's ``node_modules/.bin``.

    Returns:
        The executable's path, or None when it is not installed.
    """
    found = shutil.which(name)
    if found is None and project_root is not None:
        found = shutil.which(name, path=str(project_root / "node_modules" / ".bin"))
    return found


class BaseAssetProcessor(ABC):
    """Base class for asset processors.

    Provides shared utilities:
        - ensure_dest_dir: Creates parent directories for output files.
    """

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor can handle the given asset."""
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset file.

        Args:
            source: Source asset path.
            dest: Destination path for processed asset.

        Returns:
            True if the asset was transformed, False if it was copied as-is.
        """
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Optimizes PNG, JPEG and WebP images with Pillow in production."""

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

    def __init__(self, production: bool = False):
        self.production = production

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        if self.production:
            try:
                with Image.open(source) as img:
                    img.save(dest, optimize=True)
                return True
            except (OSError, UnidentifiedImageError) as exc:
                logger.warning("Could not optimize %s (%s); copying", source, exc)
        shutil.copy2(source, dest)
        return False


class LessProcessor(BaseAssetProcessor):
    """Compiles a LESS stylesheet using the ``lessc`` CLI.

    Falls back to copying the source when ``lessc`` is not installed or
    fails, so plain-CSS stylesheets still build.
    """

    def __init__(self, project_root: Path, production: bool = False):
        self.project_root = project_root
        self.production = production

    @property
    def priority(self) -> int:
        return 90

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".less"

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)

        compiled = self._compile(source, dest)
        if not compiled:
            shutil.copy2(source, dest)

        if self.production:
            css = dest.read_text(encoding="utf-8")
            dest.write_text(csscompressor.compress(css), encoding="utf-8")
        return compiled

    def _compile(self, source: Path, dest: Path) -> bool:
        lessc = find_executable("lessc", self.project_root)
        if not lessc:
            logger.warning(
                "lessc not found; copying %s uncompiled. "
                "Install with `npm install -D less`.",
                source.name,
            )
            return False

        cmd = [lessc]
        if not self.production:
            cmd.append("--source-map")
        cmd.extend([str(source), str(dest)])

        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            logger.error("LESS build failed: %s", result.stderr.strip())
            return False
        return True


class JSProcessor(BaseAssetProcessor):
    """Minifies JavaScript with rjsmin in production; copies otherwise."""

    def __init__(self, production: bool = False):
        self.production = production

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".js"

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        if not self.production:
            shutil.copy2(source, dest)
            return False
        with open(source, encoding="utf-8") as f_in:
            minified = rjsmin.jsmin(f_in.read())
        with open(dest, "w", encoding="utf-8") as f_out:
            f_out.write(minified)
        return True


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies static files without modification. Fallback for everything."""

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)
        return False


class AssetProcessorRegistry:
    """Selects the highest-priority processor that accepts a file."""

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        processor = self.get_processor(source)
        if processor:
            return processor.process(source, dest)
        return False


def create_static_registry(production: bool) -> AssetProcessorRegistry:
    """Registry used by the ``static`` task: images plus plain copies."""
    registry = AssetProcessorRegistry()
    registry.register(ImageProcessor(production))
    registry.register(StaticAssetProcessor())
    return registry
