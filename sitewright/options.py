"""Project options for Sitewright.

Options that are not part of the generator's own configuration live in
``sitewright.yaml`` at the project root. They are loaded into an explicit
``SiteOptions`` value that is passed to every operation needing them, and command
line flags override them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

OPTIONS_FILE = "sitewright.yaml"

DEFAULT_OPTIONS: dict[str, Any] = {
    "themes_dir": None,
    "server_flags": ["-D", "-F"],
    "author": None,
    "subdir": "post",
    "ext": ".md",
    "title_case": False,
    "install_hugo": True,
    "hugo_version": None,
}


@dataclass(frozen=True)
class SiteOptions:
    """Explicit project options.

    Attributes:
        themes_dir: Themes directory override; wins over ``themesDir`` in config.
        server_flags: Extra flags passed to ``hugo server``.
        author: Default author for new posts.
        subdir: Content subdirectory for new posts.
        ext: File extension for new posts.
        title_case: Whether to title-case post titles.
        install_hugo: Whether to install hugo when it cannot be found.
        hugo_version: Version to install; latest release when unset.
    """

    themes_dir: str | None = None
    server_flags: list[str] = field(default_factory=lambda: ["-D", "-F"])
    author: str | None = None
    subdir: str = "post"
    ext: str = ".md"
    title_case: bool = False
    install_hugo: bool = True
    hugo_version: str | None = None

    def override(self, **changes: Any) -> SiteOptions:
        """Return a copy with the non-None changes applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_options(project_root: Path) -> SiteOptions:
    """Load project options from sitewright.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        SiteOptions with defaults applied for missing keys.

    Raises:
        ConfigError: If the file is not a mapping or names unknown options.
    """
    options_path = project_root / OPTIONS_FILE
    values = DEFAULT_OPTIONS.copy()
    if options_path.exists():
        try:
            with open(options_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read {options_path}: {exc}", options_path) from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse {options_path}: {exc}", options_path) from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"{options_path} must contain a mapping", options_path)
        known = {f.name for f in fields(SiteOptions)}
        unknown = sorted(set(loaded) - known)
        if unknown:
            raise ConfigError(
                f"Unknown option(s) in {options_path}: {', '.join(unknown)}",
                options_path,
                unknown[0],
            )
        values.update(loaded)
    if isinstance(values["server_flags"], str):
        values["server_flags"] = values["server_flags"].split()
    return SiteOptions(**values)


def write_default_options(project_root: Path) -> Path:
    """Write sitewright.yaml with the default options if it does not exist."""
    options_path = project_root / OPTIONS_FILE
    if not options_path.exists():
        options_path.write_text(
            yaml.safe_dump(DEFAULT_OPTIONS, sort_keys=False), encoding="utf-8"
        )
    return options_path
