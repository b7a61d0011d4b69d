"""Theme installation for Sitewright.

Themes are downloaded as zip archives, either from a repository reference
(``owner/repo`` or ``owner/repo@ref``) or from a direct ``.zip`` URL. The archive is
unpacked into a scratch directory inside ``themes/`` and its top-level directory is
renamed into place only once everything else has succeeded, so a failed install
never leaves a partial theme behind.
"""

from __future__ import annotations

import re
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path

import httpx

from .config import DEFAULT_THEMES_DIR, find_config, set_config_field
from .errors import ConfigError, FilesystemError, ThemeInstallError
from .logging import get_logger

logger = get_logger("themes")

THEME_RE = re.compile(r"^([^/]+/[^/@]+)(@.+)?$")
ZIP_URL_RE = re.compile(r"\.zip$", re.IGNORECASE)
HASH_SUFFIX_RE = re.compile(r"-[a-f0-9]{12,40}$")
DEFAULT_BRANCH = "master"
DEFAULT_HOSTNAME = "github.com"
# Editor and IDE project files shipped inside some theme archives.
EMBEDDED_PROJECT_GLOBS = ("*.Rproj", "*.code-workspace", "*.sublime-project", "*.sublime-workspace")


@dataclass(frozen=True)
class ThemeReference:
    """A theme to download.

    Attributes:
        repo: ``owner/repo`` for repository references, None for direct URLs.
        branch: Branch, tag, or commit to download.
        url: Direct archive URL, None for repository references.
    """

    repo: str | None
    branch: str = DEFAULT_BRANCH
    url: str | None = None

    @classmethod
    def parse(cls, theme: str) -> ThemeReference:
        """Parse ``owner/repo``, ``owner/repo@ref``, or a URL ending in ``.zip``.

        Raises:
            ThemeInstallError: If the reference has neither form.
        """
        theme = theme.strip()
        if ZIP_URL_RE.search(theme):
            return cls(repo=None, branch=DEFAULT_BRANCH, url=theme)
        match = THEME_RE.match(theme)
        if not match:
            raise ThemeInstallError(
                f"Invalid theme {theme!r}: expected 'owner/repo', 'owner/repo@branch', "
                "or a full URL to a .zip file"
            )
        branch = (match.group(2) or "").lstrip("@") or DEFAULT_BRANCH
        return cls(repo=match.group(1), branch=branch)

    def archive_url(self, hostname: str = DEFAULT_HOSTNAME) -> str:
        if self.url:
            return self.url
        return f"https://{hostname}/{self.repo}/archive/{self.branch}.zip"

    @property
    def zip_name(self) -> str:
        if self.url:
            return self.url.rstrip("/").rsplit("/", 1)[-1]
        return f"{self.repo.rsplit('/', 1)[-1]}.zip"


def normalize_theme_dir(name: str, branch: str = DEFAULT_BRANCH) -> str:
    """Strip the commit hash and branch suffixes archive directories carry.

    Examples:
        >>> normalize_theme_dir("hugo-lithium-abc123def456")
        'hugo-lithium'
        >>> normalize_theme_dir("hugo-lithium-master")
        'hugo-lithium'
    """
    name = HASH_SUFFIX_RE.sub("", name)
    for suffix in dict.fromkeys([branch, branch.lstrip("v")]):
        if suffix and name.endswith(f"-{suffix}"):
            return name[: -len(suffix) - 1]
    return name


def download_file(url: str, dest: Path, client: httpx.Client | None = None) -> None:
    """Download a URL to a file.

    Raises:
        ThemeInstallError: If the request fails.
    """
    owns_client = client is None
    client = client or httpx.Client(follow_redirects=True, timeout=60)
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
    except httpx.HTTPError as exc:
        raise ThemeInstallError(f"Failed to download {url}: {exc}") from exc
    finally:
        if owns_client:
            client.close()


def _archive_root(scratch: Path) -> Path:
    entries = [p for p in scratch.iterdir() if p.name != "__MACOSX"]
    if len(entries) != 1 or not entries[0].is_dir():
        raise ThemeInstallError("Theme archive must contain exactly one top-level directory")
    return entries[0]


def _copy_example_site(example: Path, project_root: Path) -> None:
    try:
        shutil.copytree(example, project_root, dirs_exist_ok=True)
    except (OSError, shutil.Error) as exc:
        raise FilesystemError("copy example site from", example) from exc
    try:
        # The example site's themesDir points into the theme itself.
        set_config_field(project_root, "themesDir", None)
    except ConfigError:
        logger.debug("No site config to update after copying the example site")


def install_theme(
    project_root: Path,
    theme: str,
    hostname: str = DEFAULT_HOSTNAME,
    theme_example: bool = False,
    update_config: bool = True,
    force: bool = False,
    client: httpx.Client | None = None,
) -> str:
    """Download and install a theme into ``themes/``.

    Args:
        project_root: Root directory of the project.
        theme: Theme reference or archive URL.
        hostname: Host serving repository archives.
        theme_example: Copy the theme's ``exampleSite`` into the project.
        update_config: Set ``theme`` in the site config to the installed theme.
        force: Replace an installed theme of the same name.
        client: Optional HTTP client.

    Returns:
        Name of the installed theme directory.

    Raises:
        ThemeInstallError: If the reference is invalid, the download fails, or the
            theme is already installed and ``force`` is False.
    """
    ref = ThemeReference.parse(theme)
    themes_dir = project_root / DEFAULT_THEMES_DIR
    themes_dir.mkdir(parents=True, exist_ok=True)
    zip_path = themes_dir / ref.zip_name
    scratch = Path(tempfile.mkdtemp(prefix=".sitewright-theme-", dir=themes_dir))
    try:
        url = ref.archive_url(hostname)
        logger.info("Downloading theme from %s", url)
        download_file(url, zip_path, client)
        try:
            with zipfile.ZipFile(zip_path) as archive:
                archive.extractall(scratch)
        except zipfile.BadZipFile as exc:
            raise ThemeInstallError(f"{url} is not a zip archive") from exc

        root = _archive_root(scratch)
        name = normalize_theme_dir(root.name, ref.branch)
        target = themes_dir / name
        if target.exists():
            if not force:
                raise ThemeInstallError(
                    f"The theme '{name}' already exists. Install it with force=True to "
                    "replace it (local changes to the theme will be lost)."
                )
            shutil.rmtree(target)

        try:
            root.rename(target)
        except OSError as exc:
            raise FilesystemError("rename", root, exc) from exc
        for pattern in EMBEDDED_PROJECT_GLOBS:
            for leftover in target.glob(pattern):
                leftover.unlink()

        example = target / "exampleSite"
        if example.is_dir():
            if theme_example:
                _copy_example_site(example, project_root)
            else:
                logger.warning(
                    "The theme provides an example site. Read the theme's documentation "
                    "and look at the example site's config, because not all themes work "
                    "with any config."
                )
    finally:
        shutil.rmtree(scratch, ignore_errors=True)
        zip_path.unlink(missing_ok=True)

    if update_config:
        set_config_field(project_root, "theme", name)
    else:
        config_name = find_config(project_root)[0].name
        logger.info("Do not forget to set 'theme' in %s to \"%s\"", config_name, name)
    logger.info("Installed theme %s", name)
    return name
