"""Creating sites and content files.

These operations wrap ``hugo new`` and then tidy up what it produced: new sites
lose hugo's default archetype and empty directories, and new content files always
get YAML front matter whatever the project's config dialect is.

Key functions:
- new_site: Create a site skeleton, install a theme, add a sample post.
- new_content: Create a content file from an archetype.
- new_post: Create a post with its title, date, slug and taxonomies filled in.
"""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from datetime import date as Date
from pathlib import Path

import click

from .compiler import normalize_front_matter
from .config import load_config, set_config_field
from .frontmatter import modify_front_matter
from .hugo import Hugo, HugoCommand
from .logging import get_logger
from .options import SiteOptions, load_options, write_default_options
from .protocols import GeneratorRunner
from .renderers import JINJA_SUFFIXES
from .themes import DEFAULT_HOSTNAME, install_theme
from .utils import (
    DATE_PREFIX_RE,
    clean_empty_dir,
    dash_filename,
    format_date,
    has_date_prefix,
    strip_source_suffixes,
    title_case as to_title_case,
)

logger = get_logger("content")

RESOURCES_DIR = Path(__file__).parent / "resources"
SAMPLE_POST = "2015-07-23-hello-jinja.md.jinja"
DEFAULT_THEME = "yihui/hugo-lithium"
# Files that do not make a directory "non-empty" for a new site.
IGNORABLE_FILES = {"LICENSE", "README", "README.md"}
IGNORE_SOURCES_PATTERN = r"\.jinja$"


def _default_runner(install_missing: bool = False) -> Hugo:
    return Hugo(install_missing=install_missing)


def _existing_files(root: Path) -> list[str]:
    if not root.is_dir():
        return []
    return sorted(
        p.name
        for p in root.iterdir()
        if not p.name.startswith(".")
        and p.name not in IGNORABLE_FILES
        and not p.name.endswith(".Rproj")
    )


def new_site(
    root: Path,
    install_hugo: bool = True,
    format: str = "toml",
    sample: bool = True,
    theme: str | None = DEFAULT_THEME,
    hostname: str = DEFAULT_HOSTNAME,
    theme_example: bool = True,
    serve: bool = False,
    runner: GeneratorRunner | None = None,
) -> Path:
    """Create a new site.

    Args:
        root: Directory of the new site. It should be empty; hidden files and
            license or readme files are tolerated.
        install_hugo: Install hugo if it cannot be found.
        format: Config dialect for ``hugo new site -f``.
        sample: Add a sample post.
        theme: Theme reference to install, or None for no theme.
        hostname: Host serving theme archives.
        theme_example: Copy the theme's example site into the new site.
        serve: Start the preview server afterwards.
        runner: Generator used for ``hugo new site``.

    Returns:
        Resolved site directory.

    Raises:
        GeneratorExecError: If ``hugo new site`` fails.
    """
    root = root.resolve()
    existing = _existing_files(root)
    if existing:
        logger.warning("The directory '%s' is not empty", root)
    runner = runner or _default_runner(install_hugo)

    command = HugoCommand(["new", "site", str(root)])
    if not existing:
        command.flag("--force")
    command.flag("-f", format)
    runner.invoke(command.to_args()).check()

    # draft: true from hugo's default archetype is a confusing default
    (root / "archetypes" / "default.md").unlink(missing_ok=True)
    for child in sorted(root.iterdir()):
        if child.is_dir() and clean_empty_dir(child):
            logger.debug("Removed empty %s/", child.name)

    if theme:
        install_theme(root, theme, hostname=hostname, theme_example=theme_example)
    # hugo must not publish the sources next to their compiled files
    if load_config(root).get("ignoreFiles") is None:
        set_config_field(root, "ignoreFiles", [IGNORE_SOURCES_PATTERN])

    gitignore = root / "static" / ".gitignore"
    if gitignore.is_file() and "*" in gitignore.read_text(encoding="utf-8").splitlines():
        gitignore.unlink()
        clean_empty_dir(gitignore.parent)

    if sample:
        post_dir = root / "content" / "blog"
        if not post_dir.is_dir():
            post_dir = root / "content" / "post"
        post_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(RESOURCES_DIR / SAMPLE_POST, post_dir / SAMPLE_POST)

    write_default_options(root)
    logger.info("New site created at %s", root)

    if serve:  # pragma: no cover - interactive
        from .server import PreviewServer

        PreviewServer(root).start()
    return root


def default_kind(project_root: Path, path: str) -> str:
    """Pick the archetype for a content path.

    The first directory of the path names the archetype when
    ``archetypes/<dir>.md`` exists; everything else uses ``default``.

    Examples:
        ``post/2024-01-01-hello.md`` uses ``post`` if ``archetypes/post.md`` exists.
    """
    parts = Path(path).parts
    if len(parts) < 2:
        return "default"
    if not (project_root / "archetypes" / f"{parts[0]}.md").exists():
        return "default"
    return parts[0]


def markdown_path(path: str) -> str:
    """Replace a content path's extension with ``.md``."""
    name = Path(path).name
    for suffix in sorted(JINJA_SUFFIXES, key=len, reverse=True):
        if name.lower().endswith(suffix):
            return str(Path(path).with_name(name[: -len(suffix)] + ".md"))
    return str(Path(path).with_suffix(".md"))


def new_content(
    project_root: Path,
    path: str,
    kind: str | None = None,
    open: bool = False,
    runner: GeneratorRunner | None = None,
) -> Path:
    """Create a content file with ``hugo new``.

    hugo only creates ``.md`` files, so the file is created under that name and
    renamed to the requested one afterwards. Its front matter is converted to
    YAML.

    Args:
        project_root: Root directory of the project.
        path: Path of the new file relative to the content directory.
        kind: Archetype; derived from ``path`` when None. An empty string passes
            no ``-k`` flag.
        open: Open the new file in the default editor.
        runner: Generator used for ``hugo new``.

    Returns:
        Path of the new content file.

    Raises:
        GeneratorExecError: If ``hugo new`` or the conversion fails.
    """
    runner = runner or _default_runner()
    if kind is None:
        kind = default_kind(project_root, path)
    content_dir = project_root / load_config(project_root).content_dir
    md_path = markdown_path(path)

    command = HugoCommand(["new", md_path])
    if kind:
        command.flag("-k", kind)
    runner.invoke(command.to_args(), cwd=project_root).check()

    created = content_dir / md_path
    target = content_dir / path
    normalize_front_matter(created, runner)
    if created != target:
        created.replace(target)
    logger.info("Created %s", target.relative_to(project_root))
    if open:
        click.launch(str(target))
    return target


def post_filename(title: str, subdir: str | None, ext: str, date: Date | str) -> str:
    """Build ``<subdir>/<date>-<dashed-title><ext>`` for a new post.

    Examples:
        >>> post_filename("Hello World", "post", ".md", "2016-12-28")
        'post/2016-12-28-hello-world.md'
    """
    name = dash_filename(title)
    if not has_date_prefix(name):
        name = f"{format_date(date)}-{name}"
    subdir = (subdir or "").strip("/")
    return f"{subdir}/{name}{ext}" if subdir else f"{name}{ext}"


def post_slug(file: str) -> str:
    """Derive a slug from a post file name by dropping its date and extensions."""
    return DATE_PREFIX_RE.sub("", strip_source_suffixes(file))


def new_post(
    project_root: Path,
    title: str,
    kind: str | None = None,
    open: bool = False,
    author: str | None = None,
    categories: Sequence[str] = (),
    tags: Sequence[str] = (),
    date: Date | str | None = None,
    file: str | None = None,
    slug: str | None = None,
    title_case: bool | None = None,
    subdir: str | None = None,
    ext: str | None = None,
    options: SiteOptions | None = None,
    runner: GeneratorRunner | None = None,
) -> Path:
    """Create a new post and fill in its front matter.

    Arguments left as None fall back to the project options (``author``,
    ``subdir``, ``ext``, and ``title_case``). An empty ``slug`` drops the field.

    Returns:
        Path of the new post.
    """
    options = (options or load_options(project_root)).override(
        author=author, subdir=subdir, ext=ext, title_case=title_case
    )
    date = date or Date.today()
    file = (file or post_filename(title, options.subdir, options.ext, date)).strip()
    if kind is None:
        kind = default_kind(project_root, file)
    if slug is None:
        slug = post_slug(file)
    slug = slug.strip()

    path = new_content(project_root, file, kind, open=False, runner=runner)
    if options.title_case:
        title = to_title_case(title)

    fields = {
        "title": title,
        "author": options.author,
        "date": format_date(date),
        "slug": slug or None,
        "categories": list(categories),
        "tags": list(tags),
    }
    if not (project_root / "archetypes" / "default.md").exists():
        fields["draft"] = None
    modify_front_matter(path, **fields)
    if open:
        click.launch(str(path))
    return path
