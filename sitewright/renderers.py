"""Source document renderers for Sitewright.

This module contains implementations of the DocumentRenderer protocol. Each
renderer handles one rich-markup source format and knows the plain format its
output is written in.

Key classes:
- JinjaRenderer: Renders Jinja-templated Markdown/HTML (``*.md.jinja``) to plain files.
- RendererRegistry: Picks the renderer for a source path.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .shortcodes import shortcode, shortcode_html, shortcodes

# Compiled suffix for each source suffix.
JINJA_SUFFIXES = {
    ".md.jinja": ".md",
    ".markdown.jinja": ".markdown",
    ".html.jinja": ".html",
}


def _source_suffix(path: Path) -> str:
    return "".join(path.suffixes[-2:]).lower()


class _RecordingLoader(FileSystemLoader):
    """FileSystemLoader that remembers every file it hands to Jinja."""

    def __init__(self, searchpath, loaded: list[Path]):
        super().__init__(searchpath)
        self.loaded = loaded

    def get_source(self, environment, template):
        source, filename, uptodate = super().get_source(environment, template)
        path = Path(filename)
        if path not in self.loaded:
            self.loaded.append(path)
        return source, filename, uptodate


class JinjaRenderer:
    """Renders Jinja-templated content documents.

    The whole file, front matter included, is rendered with the shortcode helpers
    and the document's context. Undefined variables are errors rather than empty
    strings, so a typo never produces silently broken content.

    Attributes:
        search_path: Directories ``{% include %}`` and ``{% import %}`` look in
            after the document's own directory.
        dependencies: Files included or imported by the last rendered document.
    """

    def __init__(self, search_path: Iterable[Path] = ()):
        self.search_path = list(search_path)
        self.dependencies: list[Path] = []

    def can_render(self, path: Path) -> bool:
        return _source_suffix(path) in JINJA_SUFFIXES

    def target_path(self, path: Path) -> Path:
        suffix = JINJA_SUFFIXES[_source_suffix(path)]
        return path.with_name(path.name[: -len(_source_suffix(path))] + suffix)

    def _environment(self, path: Path) -> Environment:
        env = Environment(
            loader=_RecordingLoader([path.parent, *self.search_path], self.dependencies),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        env.globals["shortcode"] = shortcode
        env.globals["shortcode_html"] = shortcode_html
        env.globals["shortcodes"] = shortcodes
        return env

    def render(self, path: Path, context: dict[str, Any]) -> str:
        """Render a source document.

        Args:
            path: Path to the source file.
            context: Variables available to the document.

        Returns:
            Rendered text.
        """
        self.dependencies = []
        env = self._environment(path)
        template = env.from_string(path.read_text(encoding="utf-8"))
        return template.render(**context)


class RendererRegistry:
    """Registry for document renderers.

    New source formats are supported by registering another renderer; the
    compiler asks the registry which one applies to a path.
    """

    def __init__(self, renderers: Iterable[Any] | None = None):
        self._renderers: list = []
        for renderer in renderers if renderers is not None else [JinjaRenderer()]:
            self.register(renderer)

    def register(self, renderer) -> None:
        """Register a new renderer.

        Args:
            renderer: A DocumentRenderer implementation.
        """
        self._renderers.append(renderer)

    def get_renderer(self, path: Path):
        """Get the renderer for a file.

        Args:
            path: Path to the source file.

        Returns:
            The first renderer that can handle the file, or None.
        """
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None

    def is_source(self, path: Path) -> bool:
        return self.get_renderer(path) is not None
