"""Front matter handling for Sitewright.

Content files start with a metadata block. Sources may use YAML (``---`` fences) or
TOML (``+++`` fences); compiled files always use YAML, which is what the helpers
here write.
"""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any

import yaml

from .utils import atomic_write_text

YAML_FRONTMATTER_RE = re.compile(r"^---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|$)", re.DOTALL)
TOML_FRONTMATTER_RE = re.compile(r"^\+\+\+[ \t]*\r?\n(?:(.*?)\r?\n)?\+\+\+[ \t]*(?:\r?\n|$)", re.DOTALL)


def front_matter_dialect(text: str) -> str | None:
    """Return ``yaml``, ``toml``, ``json``, or None depending on how the text starts."""
    first = text.lstrip("\ufeff").split("\n", 1)[0].strip()
    if first == "---":
        return "yaml"
    if first == "+++":
        return "toml"
    if first.startswith("{"):
        return "json"
    return None


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split a document into its metadata and body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (metadata dict, remaining content). Documents without a
        recognizable block return an empty dict and the full text.
    """
    text = text.lstrip("\ufeff")
    match = YAML_FRONTMATTER_RE.match(text)
    if match:
        try:
            data = yaml.safe_load(match.group(1) or "") or {}
        except yaml.YAMLError:
            return {}, text
        if isinstance(data, dict):
            return data, text[match.end() :]
        return {}, text
    match = TOML_FRONTMATTER_RE.match(text)
    if match:
        try:
            return tomllib.loads(match.group(1) or ""), text[match.end() :]
        except tomllib.TOMLDecodeError:
            return {}, text
    return {}, text


def dump_front_matter(data: dict[str, Any], body: str) -> str:
    """Serialize metadata as a YAML block followed by the body."""
    if data:
        block = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    else:
        block = "\n"
    return f"---\n{block}---\n{body}"


def read_front_matter(path: Path) -> dict[str, Any]:
    """Read the metadata block of a content file."""
    data, _ = split_front_matter(path.read_text(encoding="utf-8"))
    return data


def modify_front_matter(path: Path, **fields: Any) -> dict[str, Any]:
    """Set metadata fields of a YAML content file in the order given.

    Fields already present keep their position; new fields are appended. A value
    of None removes the field.

    Args:
        path: Content file to edit.
        **fields: Field values to set.

    Returns:
        The updated metadata.
    """
    data, body = split_front_matter(path.read_text(encoding="utf-8"))
    for key, value in fields.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
    atomic_write_text(path, dump_front_matter(data, body))
    return data
