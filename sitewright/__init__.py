"""Sitewright: an authoring-to-publishing pipeline for Hugo sites.

This package compiles Jinja-templated Markdown sources into plain Markdown content,
drives the external ``hugo`` binary to render the site, and keeps the project
configuration and installed themes in sync.

The main entry point is the CLI module, which provides commands for creating sites
and posts, installing themes, building once, watching for changes, and serving a
local preview.

Architecture:
- config: reads and mutates the site configuration (TOML or YAML).
- compiler: fingerprint-driven compilation of source documents.
- orchestrator: the build cycle and the watch loop.
- hugo: discovery of and command construction for the generator binary.
- server: the preview bridge around ``hugo server``.
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
