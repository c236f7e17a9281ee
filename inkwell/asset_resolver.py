"""Asset path resolution for Inkwell.

Production builds fingerprint compiled assets (``main.css`` becomes
``main.1a2b3c4d.css``). The mapping from logical to fingerprinted names is
stored in ``assets/manifest.json`` under the build root so the ``pages`` task
can resolve asset URLs even when it runs on its own.

Key classes:
- AssetManifest: Logical name to built file mapping.
- AssetNotFoundError: Raised for assets missing from the build.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

MANIFEST_PATH = "assets/manifest.json"


class AssetNotFoundError(Exception):
    """Error raised when an asset is not present in the build.

    Attributes:
        asset_name: The logical asset name that was requested.
        searched_paths: Paths that were checked.
    """

    def __init__(self, asset_name: str, searched_paths: list[Path]):
        self.asset_name = asset_name
        self.searched_paths = searched_paths
        paths_str = ", ".join(str(p) for p in searched_paths)
        super().__init__(f"asset '{asset_name}' not found. Searched: {paths_str}")


class AssetManifest:
    """Maps logical asset names to their built (possibly fingerprinted) paths.

    Names are POSIX paths relative to the build root, e.g.
    ``assets/css/main.css``.

    Attributes:
        build_root: Build output directory.
    """

    def __init__(self, build_root: Path, entries: dict[str, str] | None = None):
        self.build_root = build_root
        self._entries: dict[str, str] = dict(entries or {})

    @property
    def path(self) -> Path:
        return self.build_root / MANIFEST_PATH

    @classmethod
    def load(cls, build_root: Path) -> AssetManifest:
        """Load the manifest written by earlier asset tasks, if any."""
        manifest = cls(build_root)
        if manifest.path.exists():
            with open(manifest.path, encoding="utf-8") as f:
                manifest._entries.update(json.load(f))
        return manifest

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._entries, f, indent=2, sort_keys=True)
            f.write("\n")

    def add(self, logical: str, built: str) -> None:
        self._entries[logical] = built

    def discard(self, logical: str) -> None:
        self._entries.pop(logical, None)

    def entries(self) -> dict[str, str]:
        return dict(self._entries)

    def resolve(self, name: str) -> str:
        """Return the built path for a logical asset name.

        Args:
            name: Logical path such as ``assets/css/main.css`` (a leading
                ``/`` is ignored).

        Returns:
            Built path relative to the build root.

        Raises:
            AssetNotFoundError: If the asset is neither in the manifest nor
                present on disk.
        """
        logical = PurePosixPath(name.lstrip("/")).as_posix()
        built = self._entries.get(logical, logical)
        target = self.build_root / built
        if not target.exists():
            raise AssetNotFoundError(logical, [target])
        return built

    def url(self, name: str) -> str:
        """Return the site-relative URL of an asset."""
        return "/" + self.resolve(name)

    def read(self, name: str) -> str:
        """Return the text of a built asset, for inlining into a page."""
        return (self.build_root / self.resolve(name)).read_text(encoding="utf-8")
