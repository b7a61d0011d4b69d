"""Site configuration for Sitewright.

This module reads the generator's site configuration and edits single fields of it
in place. Two dialects are supported and the file name decides which one is used:
``config.toml`` (checked first) or ``config.yaml``/``config.yml``, then the
``hugo.*`` names newer hugo releases create.

The configuration is never cached: callers load it again for every build cycle
because the author may edit it at any time. Edits touch exactly one line, so the
formatting and ordering of everything else in the file is preserved.

Key functions:
- find_config: Locate the config file and its dialect.
- load_config: Parse the config file into a SiteConfig.
- set_config_field: Add, replace, or delete one top-level field.
"""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .logging import get_logger
from .utils import atomic_write_text

logger = get_logger("config")

CONFIG_FILES = (
    ("config.toml", "toml"),
    ("config.yaml", "yaml"),
    ("config.yml", "yaml"),
    ("hugo.toml", "toml"),
    ("hugo.yaml", "yaml"),
    ("hugo.yml", "yaml"),
)

DEFAULT_THEMES_DIR = "themes"
DEFAULT_CONTENT_DIR = "content"
DEFAULT_PUBLISH_DIR = "public"
DEFAULT_BASE_URL = "/"

_TOML_KEY_RE = re.compile(r"^([\w-]+)\s*=")


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that refuses mappings with repeated keys."""

    def construct_mapping(self, node, deep=False):
        seen: set = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise ConfigError(f"Duplicated configuration for '{key}'", key=str(key))
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


@dataclass
class SiteConfig:
    """Parsed site configuration.

    Attributes:
        path: Config file the values were read from.
        dialect: ``toml`` or ``yaml``.
        data: Top-level configuration mapping.
    """

    path: Path
    dialect: str
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a top-level key, ignoring case the way hugo does."""
        if key in self.data:
            return self.data[key]
        lowered = key.lower()
        for name, value in self.data.items():
            if name.lower() == lowered:
                return value
        return default

    @property
    def root(self) -> Path:
        return self.path.parent

    @property
    def theme(self) -> str | None:
        value = self.get("theme")
        if isinstance(value, list):
            value = value[0] if value else None
        return str(value) if value else None

    @property
    def themes_dir(self) -> str:
        return str(self.get("themesDir", DEFAULT_THEMES_DIR))

    @property
    def content_dir(self) -> str:
        return str(self.get("contentDir", DEFAULT_CONTENT_DIR))

    @property
    def publish_dir(self) -> str:
        return str(self.get("publishDir", DEFAULT_PUBLISH_DIR))

    @property
    def base_url(self) -> str:
        return str(self.get("baseurl", DEFAULT_BASE_URL))


def _check_toml_keys(text: str) -> None:
    """Reject a top-level key assigned twice before any table header."""
    seen: set[str] = set()
    for line in text.splitlines():
        if line.lstrip().startswith("["):
            break
        match = _TOML_KEY_RE.match(line)
        if not match:
            continue
        key = match.group(1)
        if key in seen:
            raise ConfigError(f"Duplicated configuration for '{key}'", key=key)
        seen.add(key)


def find_config(project_root: Path) -> tuple[Path, str]:
    """Locate the site config file.

    Args:
        project_root: Root directory of the project.

    Returns:
        Tuple of (config path, dialect).

    Raises:
        ConfigError: If no recognized config file exists.
    """
    for name, dialect in CONFIG_FILES:
        candidate = project_root / name
        if candidate.exists():
            return candidate, dialect
    names = ", ".join(name for name, _ in CONFIG_FILES)
    raise ConfigError(f"No site configuration found in {project_root} (looked for {names})")


def load_config(project_root: Path) -> SiteConfig:
    """Read the site configuration fresh from disk.

    Args:
        project_root: Root directory of the project.

    Returns:
        SiteConfig for the detected dialect.

    Raises:
        ConfigError: If the file cannot be parsed or defines a key twice.
    """
    path, dialect = find_config(project_root)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read {path}: {exc}", path) from exc
    try:
        if dialect == "toml":
            data = tomllib.loads(text)
        else:
            data = yaml.load(text, Loader=_UniqueKeyLoader) or {}
    except ConfigError as exc:
        raise ConfigError(f"{exc} in {path}", path, exc.key) from exc
    except tomllib.TOMLDecodeError as exc:
        # tomllib reports a repeated key by position only
        try:
            _check_toml_keys(text)
        except ConfigError as dup:
            raise ConfigError(f"{dup} in {path}", path, dup.key) from exc
        raise ConfigError(f"Cannot parse {path}: {exc}", path) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}", path) from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level", path)
    return SiteConfig(path=path, dialect=dialect, data=data)


def format_value(value: Any, dialect: str) -> str:
    """Format a Python value as a scalar literal of the given dialect."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v, dialect) for v in value) + "]"
    # A JSON string literal is a valid basic string in both dialects.
    return json.dumps(str(value), ensure_ascii=False)


@dataclass
class ConfigChange:
    """Record of one config mutation.

    Attributes:
        path: Config file that was written.
        previous: File text before the change.
        text: File text after the change.
    """

    path: Path
    previous: str
    text: str

    @property
    def changed(self) -> bool:
        return self.previous != self.text


def set_config_field(project_root: Path, name: str, value: Any) -> ConfigChange:
    """Set or delete one top-level field of the site config.

    The first line defining ``name`` is replaced, or a new line is prepended when
    none exists; ``value=None`` deletes the line. Applying the same change twice
    leaves the file as after the first application.

    Args:
        project_root: Root directory of the project.
        name: Top-level key.
        value: New value, or None to delete the field.

    Returns:
        ConfigChange with the previous and new file text.

    Raises:
        ConfigError: If more than one line defines ``name``.
    """
    path, dialect = find_config(project_root)
    previous = path.read_text(encoding="utf-8")
    separator = "=" if dialect == "toml" else ":"
    pattern = re.compile(rf"^{re.escape(name)}\s*{separator}.+")
    lines = previous.splitlines(keepends=True)
    matches = [i for i, line in enumerate(lines) if pattern.match(line)]
    if len(matches) > 1:
        raise ConfigError(f"Duplicated configuration for '{name}' in {path.name}", path, name)

    new_line = None
    if value is not None:
        joiner = " = " if dialect == "toml" else ": "
        new_line = f"{name}{joiner}{format_value(value, dialect)}"

    if matches:
        index = matches[0]
        if new_line is None:
            del lines[index]
        else:
            ending = lines[index][len(lines[index].rstrip("\r\n")) :]
            lines[index] = new_line + (ending or "\n")
    elif new_line is not None:
        lines.insert(0, new_line + "\n")

    text = "".join(lines)
    if text != previous:
        atomic_write_text(path, text)
        logger.debug("Updated '%s' in %s", name, path.name)
    return ConfigChange(path=path, previous=previous, text=text)
