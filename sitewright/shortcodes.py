"""Hugo shortcode helpers for source documents.

Jinja uses ``{{ }}`` delimiters too, so a literal shortcode such as
``{{< figure src="a.png" >}}`` cannot be written inside a ``*.md.jinja`` source.
These helpers produce the shortcode text instead and are available in every
source document:

    {{ shortcode('figure', src='/images/foo.png', alt='A nice figure') }}
    {{ shortcode('highlight', 'bash', content='echo hello world;') }}
    {{ shortcode_html('myshortcode', content='My <strong>shortcode</strong>.') }}

The returned strings are ``Markup`` so autoescaping never touches them.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from markupsafe import Markup


def _quote(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def args_string(*args: Any, **kwargs: Any) -> str:
    """Format shortcode arguments, which are either all positional or all named.

    Raises:
        ValueError: If positional and named arguments are mixed.
    """
    if args and kwargs:
        raise ValueError("Shortcode arguments must be either all named or all unnamed")
    if kwargs:
        return " ".join(f"{name}={_quote(value)}" for name, value in kwargs.items())
    return " ".join(_quote(value) for value in args)


def shortcode(
    name: str,
    *args: Any,
    content: str | Sequence[str] | None = None,
    type: str = "markdown",
    **kwargs: Any,
) -> Markup:
    """Return a shortcode, with a closing tag only when there is inner content.

    Args:
        name: Shortcode name.
        *args: Positional shortcode arguments.
        content: Inner content (lines are joined with newlines).
        type: ``markdown`` for ``{{% %}}`` or ``html`` for ``{{< >}}``.
        **kwargs: Named shortcode arguments.

    Returns:
        The shortcode text.
    """
    if type not in ("markdown", "html"):
        raise ValueError(f"Unknown shortcode type {type!r}; expected 'markdown' or 'html'")
    if content is None:
        inner = ""
    elif isinstance(content, str):
        inner = content
    else:
        inner = "\n".join(content)
    arguments = args_string(*args, **kwargs)
    if arguments:
        arguments = f" {arguments}"
    if type == "html":
        opening, closing = f"{{{{< {name}{arguments} >}}}}", f"{{{{< /{name} >}}}}"
    else:
        opening, closing = f"{{{{% {name}{arguments} %}}}}", f"{{{{% /{name} %}}}}"
    if not inner:
        return Markup(opening)
    return Markup(f"{opening}\n{inner}\n{closing}")


def shortcode_html(name: str, *args: Any, **kwargs: Any) -> Markup:
    """Shorthand for ``shortcode(..., type="html")``."""
    return shortcode(name, *args, type="html", **kwargs)


def shortcodes(
    name: str, values: Sequence[Any], sep: str = "\n", type: str = "markdown"
) -> Markup:
    """Return one single-argument shortcode per value, joined by ``sep``.

    Examples:
        >>> str(shortcodes("tweet", ["1", "2"]))
        '{{% tweet "1" %}}\\n{{% tweet "2" %}}'
    """
    return Markup(sep.join(shortcode(name, value, type=type) for value in values))
