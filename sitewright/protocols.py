"""Protocol definitions for Sitewright.

This module defines the interfaces (protocols) the build pipeline depends on, so
the compiler and orchestrator never talk to a concrete generator or renderer
directly.

These protocols enable:
- Running the pipeline against a fake generator in tests
- Adding source formats without modifying the compiler
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import threading

    from .hugo import ProcessResult


@runtime_checkable
class GeneratorRunner(Protocol):
    """Protocol for running the external site generator.

    Implementations block until the process exits and return its captured output.
    """

    @abstractmethod
    def invoke(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        cancel: threading.Event | None = None,
    ) -> ProcessResult:
        """Run the generator with the given arguments.

        Args:
            args: Arguments after the binary name.
            cwd: Working directory for the process.
            cancel: Token checked once, before the process is spawned.

        Returns:
            ProcessResult with exit code and captured output.
        """
        ...


@runtime_checkable
class DocumentRenderer(Protocol):
    """Protocol for rendering rich-markup source documents to plain content.

    Implementations handle one source format each and declare which suffix they
    consume and which suffix the compiled file gets.
    """

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file.

        Args:
            path: Path to the source file.

        Returns:
            True if this renderer can process the file.
        """
        ...

    @abstractmethod
    def target_path(self, path: Path) -> Path:
        """Return the path of the compiled file for a source path."""
        ...

    @abstractmethod
    def render(self, path: Path, context: dict[str, Any]) -> str:
        """Render a source document.

        Args:
            path: Path to the source file.
            context: Variables available to the document.

        Returns:
            The compiled plain-format text.
        """
        ...
