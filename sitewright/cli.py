"""Command-line interface for Sitewright.

This module defines the CLI commands using Click framework.

Commands:
- new: Create a new site.
- new-post / new-content: Create content files.
- install-theme / install-hugo: Fetch a theme or the hugo binary.
- build: Compile documents and render the site once.
- watch: Rebuild whenever a file changes.
- serve: Run hugo's preview server next to the compile loop.
- convert: Convert front matter of all content with hugo.
- version: Show the version of the hugo binary.
"""

from __future__ import annotations

from datetime import date as Date
from pathlib import Path

import click
import questionary

from . import __version__
from .errors import CompileError, GeneratorExecError, SitewrightError
from .hugo import CONVERT_DIALECTS, Hugo, convert_command, install_hugo as download_hugo
from .logging import configure_logging
from .options import load_options


def _options():
    return load_options(Path.cwd())


def _hugo(options) -> Hugo:
    return Hugo(install_missing=options.install_hugo, install_version=options.hugo_version)


def _report(exc: SitewrightError) -> None:
    """Print a failure the way every command reports it, then exit with 1."""
    if isinstance(exc, CompileError):
        try:
            shown = exc.source_path.relative_to(Path.cwd())
        except ValueError:
            shown = exc.source_path
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  File: {shown}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
    else:
        click.echo(click.style("Error:", fg="red", bold=True) + f" {exc}", err=True)
        if isinstance(exc, GeneratorExecError) and exc.output:
            click.echo(exc.output.rstrip(), err=True)
    raise SystemExit(1) from None


@click.group()
@click.version_option(version=__version__, prog_name="sitewright")
@click.option("-v", "--verbose", is_flag=True, help="Show debug messages")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write log messages to this file",
)
def cli(verbose: bool, log_file: Path | None):
    """Sitewright: build hugo sites from Jinja sources."""
    configure_logging(verbose=verbose, log_file=log_file)


@cli.command()
@click.argument("directory", default=".", type=click.Path(file_okay=False, path_type=Path))
@click.option("--format", "fmt", type=click.Choice(["toml", "yaml"]), default="toml", show_default=True)
@click.option("--theme", default="yihui/hugo-lithium", show_default=True, help="Theme to install ('' for none)")
@click.option("--hostname", default="github.com", show_default=True, help="Host serving theme archives")
@click.option("--sample/--no-sample", default=True, help="Add a sample post")
@click.option("--theme-example/--no-theme-example", default=True, help="Copy the theme's example site")
@click.option("--install-hugo/--no-install-hugo", default=True, help="Install hugo if it is missing")
@click.option("--serve", is_flag=True, help="Start the preview server afterwards")
def new(
    directory: Path,
    fmt: str,
    theme: str,
    hostname: str,
    sample: bool,
    theme_example: bool,
    install_hugo: bool,
    serve: bool,
):
    """Create a new site in DIRECTORY."""
    from .content import new_site

    try:
        root = new_site(
            directory,
            install_hugo=install_hugo,
            format=fmt,
            sample=sample,
            theme=theme or None,
            hostname=hostname,
            theme_example=theme_example,
            serve=serve,
        )
    except SitewrightError as exc:
        _report(exc)
    click.echo(f"New site created at {root}")


@cli.command("new-post")
@click.argument("title", required=False)
@click.option("--kind", default=None, help="Archetype to use")
@click.option("--author", default=None)
@click.option("--category", "categories", multiple=True, help="Category (repeatable)")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--date", "post_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--file", "file", default=None, help="File name under the content directory")
@click.option("--slug", default=None, help="Slug ('' for none)")
@click.option("--subdir", default=None, help="Content subdirectory (overrides sitewright.yaml)")
@click.option("--ext", default=None, help="File extension, e.g. .md or .md.jinja")
@click.option("--title-case/--no-title-case", default=None)
@click.option("--open", "open_file", is_flag=True, help="Open the new post in an editor")
def new_post_command(
    title: str | None,
    kind: str | None,
    author: str | None,
    categories: tuple[str, ...],
    tags: tuple[str, ...],
    post_date,
    file: str | None,
    slug: str | None,
    subdir: str | None,
    ext: str | None,
    title_case: bool | None,
    open_file: bool,
):
    """Create a new post; asks for the title when it is not given."""
    from .content import new_post

    project_root = Path.cwd()
    if title is None:
        title = questionary.text(
            "Title:",
            validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
            style=_questionary_style(),
        ).ask()
        if title is None:
            raise click.Abort()
    try:
        options = _options()
        path = new_post(
            project_root,
            title.strip(),
            kind=kind,
            open=open_file,
            author=author,
            categories=categories,
            tags=tags,
            date=post_date.date() if post_date else Date.today(),
            file=file,
            slug=slug,
            title_case=title_case,
            subdir=subdir,
            ext=ext,
            options=options,
            runner=_hugo(options),
        )
    except SitewrightError as exc:
        _report(exc)
    click.echo(f"Created {path.relative_to(project_root)}")


@cli.command("new-content")
@click.argument("path")
@click.option("--kind", default=None, help="Archetype to use")
@click.option("--open", "open_file", is_flag=True, help="Open the new file in an editor")
def new_content_command(path: str, kind: str | None, open_file: bool):
    """Create a content file at PATH (relative to the content directory)."""
    from .content import new_content

    project_root = Path.cwd()
    try:
        created = new_content(
            project_root, path, kind=kind, open=open_file, runner=_hugo(_options())
        )
    except SitewrightError as exc:
        _report(exc)
    click.echo(f"Created {created.relative_to(project_root)}")


@cli.command("install-theme")
@click.argument("theme")
@click.option("--hostname", default="github.com", show_default=True)
@click.option("--theme-example", is_flag=True, help="Copy the theme's example site")
@click.option("--no-update-config", is_flag=True, help="Leave 'theme' in the config alone")
@click.option("--force", is_flag=True, help="Replace an installed theme of the same name")
def install_theme_command(
    theme: str, hostname: str, theme_example: bool, no_update_config: bool, force: bool
):
    """Install THEME (owner/repo, owner/repo@ref, or a .zip URL)."""
    from .themes import install_theme

    try:
        name = install_theme(
            Path.cwd(),
            theme,
            hostname=hostname,
            theme_example=theme_example,
            update_config=not no_update_config,
            force=force,
        )
    except SitewrightError as exc:
        _report(exc)
    click.echo(f"Installed theme {name}")


@cli.command("install-hugo")
@click.option("--version", "hugo_version", default=None, help="Release to install (default: latest)")
@click.option(
    "--dest",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Install directory (default: ~/.local/bin)",
)
def install_hugo_command(hugo_version: str | None, dest: Path | None):
    """Download and install the hugo binary."""
    try:
        target = download_hugo(hugo_version, dest)
    except SitewrightError as exc:
        _report(exc)
    click.echo(f"Installed hugo to {target}")


@cli.command()
@click.option("--local", is_flag=True, help="Build for local preview (base dir, drafts, future posts)")
@click.option("--full", is_flag=True, help="Compile every document regardless of fingerprints")
def build(local: bool, full: bool):
    """Compile documents and render the site."""
    from .orchestrator import Orchestrator

    project_root = Path.cwd()
    try:
        result = Orchestrator(project_root, _options()).build(local=local, full=full)
    except SitewrightError as exc:
        _report(exc)
    click.echo(
        f"Compiled {len(result.compiled)} documents; site written to {result.output_dir}"
    )


@cli.command()
@click.option("--no-local", is_flag=True, help="Render with the configured baseurl")
def watch(no_local: bool):
    """Build, then rebuild whenever a file changes."""
    from .orchestrator import Orchestrator

    try:
        orchestrator = Orchestrator(Path.cwd(), _options())
    except SitewrightError as exc:
        _report(exc)
    click.echo("Watching for changes (Ctrl+C to stop)")
    try:
        for result in orchestrator.watch(local=not no_local):
            if result.ok:
                click.echo(f"Built {len(result.compiled)} changed documents")
    except KeyboardInterrupt:
        orchestrator.stop()


@cli.command()
@click.option("--host", default=None, help="Address to bind (default: 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Port to listen on (default: 4321)")
def serve(host: str | None, port: int | None):
    """Run hugo's preview server and recompile documents on change."""
    from .server import DEFAULT_HOST, DEFAULT_PORT, PreviewServer

    try:
        server = PreviewServer(
            Path.cwd(), host or DEFAULT_HOST, port or DEFAULT_PORT, options=_options()
        )
        server.start()
    except SitewrightError as exc:
        _report(exc)


@cli.command()
@click.option(
    "--to",
    type=click.Choice(CONVERT_DIALECTS, case_sensitive=False),
    default="YAML",
    show_default=True,
)
@click.option("--unsafe", is_flag=True, help="Overwrite the source files in place")
@click.argument("extra", nargs=-1)
def convert(to: str, unsafe: bool, extra: tuple[str, ...]):
    """Convert front matter of all content with hugo convert."""
    try:
        result = _hugo(_options()).run(convert_command(to, unsafe, extra), cwd=Path.cwd())
    except SitewrightError as exc:
        _report(exc)
    if result.stdout:
        click.echo(result.stdout.rstrip())


@cli.command()
def version():
    """Show the version of the hugo binary."""
    try:
        found = _hugo(_options()).version()
    except SitewrightError as exc:
        _report(exc)
    if found is None:
        click.echo("hugo (unknown version)")
    else:
        click.echo("hugo " + ".".join(str(part) for part in found))


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
