"""Exception types shared by the build stages."""

from __future__ import annotations

from pathlib import Path


class InkwellError(Exception):
    """Base class for all errors raised by Inkwell."""


class ConfigError(InkwellError):
    """Invalid value in inkwell.yaml or the environment."""


class FrontMatterError(InkwellError):
    """The front-matter block at the head of a file could not be parsed."""


class ContentError(InkwellError):
    """A source file could not be turned into a page."""


class BuildError(InkwellError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class DestinationCollisionError(InkwellError):
    """Two or more sources resolve to the same output file.

    Attributes:
        collisions: Mapping of destination path to the sources writing it.
    """

    def __init__(self, collisions: dict[Path, list[Path]]):
        self.collisions = collisions
        lines = [
            f"{dest} <- {', '.join(str(s) for s in sources)}"
            for dest, sources in collisions.items()
        ]
        super().__init__("Destination collision: " + "; ".join(lines))


class BuildFailed(InkwellError):
    """One or more files failed to build.

    Attributes:
        errors: The per-file errors, in the order they occurred.
    """

    def __init__(self, errors: list[BuildError]):
        self.errors = errors
        noun = "file" if len(errors) == 1 else "files"
        super().__init__(f"{len(errors)} {noun} failed to build")
