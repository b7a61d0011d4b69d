"""Error types for Sitewright.

Every fatal condition raised by the library derives from ``SitewrightError`` so the
CLI can report it uniformly. ``VersionParseWarning`` is the only soft condition and
is emitted through ``warnings.warn``.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class SitewrightError(Exception):
    """Base class for all Sitewright errors."""


class ConfigError(SitewrightError):
    """Invalid or ambiguous site configuration.

    Attributes:
        path: Config file involved, when known.
        key: Config key involved, when known.
    """

    def __init__(self, message: str, path: Path | None = None, key: str | None = None):
        self.path = path
        self.key = key
        super().__init__(message)


class BinaryNotFoundError(SitewrightError):
    """The generator binary could not be located or installed."""


class GeneratorExecError(SitewrightError):
    """The generator exited with a non-zero status.

    Attributes:
        command: Argument vector passed to the binary.
        exit_code: Process exit status.
        output: Full captured output of the process.
    """

    def __init__(self, args: Sequence[str], exit_code: int, output: str):
        self.command = list(args)
        self.exit_code = exit_code
        self.output = output
        rendered = " ".join(self.command)
        super().__init__(f"hugo {rendered} failed with exit code {exit_code}")


class CompileError(SitewrightError):
    """Error while compiling a source document.

    Attributes:
        source_path: Path to the source document.
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


class ThemeInstallError(SitewrightError):
    """A theme reference is malformed or cannot be installed."""


class FilesystemError(SitewrightError):
    """A filesystem operation failed.

    Attributes:
        operation: Short name of the operation (``copy``, ``rename``, ...).
        path: Path the operation acted on.
        cause: Underlying OS error.
    """

    def __init__(self, operation: str, path: Path, cause: OSError | None = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        detail = f": {cause.strerror or cause}" if cause is not None else ""
        super().__init__(f"Failed to {operation} {path}{detail}")


class BuildCancelled(SitewrightError):
    """A cancellation was requested before the generator was spawned."""


class VersionParseWarning(UserWarning):
    """The generator reported a version string of an unexpected shape."""
