"""Adapter for the external ``hugo`` binary.

The binary is located once per process and cached. Commands are assembled with
``HugoCommand``, an ordered list of flag/value pairs that is validated before it is
turned into an argument vector, and every flag is derived from exactly one source:
the resolved site config or an explicit call-time override (which wins).

Key pieces:
- find_hugo / install_hugo: discovery with a process-wide cache, optional install.
- HugoCommand: typed command builder.
- theme_flags, build_command, convert_command: flag derivation from config.
- Hugo: runs the binary synchronously and captures its output.
"""

from __future__ import annotations

import io
import os
import platform
import re
import shlex
import shutil
import subprocess
import sys
import tarfile
import threading
import warnings
import zipfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

import httpx

from .config import SiteConfig
from .errors import (
    BinaryNotFoundError,
    BuildCancelled,
    GeneratorExecError,
    VersionParseWarning,
)
from .logging import get_logger

logger = get_logger("hugo")

VERSION_RE = re.compile(r"^.* v([0-9.]{2,}).*$", re.MULTILINE)
RELEASES_API = "https://api.github.com/repos/gohugoio/hugo/releases/latest"
DOWNLOAD_URL = "https://github.com/gohugoio/hugo/releases/download/v{version}/{asset}"
CONVERT_DIALECTS = ("YAML", "TOML", "JSON")

_resolved_binary: str | None = None
_resolve_lock = threading.Lock()


def _executable_name() -> str:
    return "hugo.exe" if sys.platform == "win32" else "hugo"


def _candidate_paths() -> list[Path]:
    """Known install locations searched after PATH."""
    home = Path.home()
    name = _executable_name()
    candidates = [
        home / ".local" / "bin" / name,
        home / "bin" / name,
        Path("/usr/local/bin") / name,
        Path("/opt/homebrew/bin") / name,
        Path("/snap/bin") / name,
    ]
    appdata = os.environ.get("APPDATA")
    if appdata:
        candidates.append(Path(appdata) / "Hugo" / "bin" / name)
    return candidates


def find_hugo() -> str | None:
    """Find the hugo binary in PATH or a known install location.

    The result is cached for the rest of the process; the binary is not expected
    to move while sitewright runs.

    Returns:
        Full path to the executable if found, None otherwise.
    """
    global _resolved_binary
    with _resolve_lock:
        if _resolved_binary is not None:
            return _resolved_binary
        found = shutil.which("hugo")
        if not found:
            for candidate in _candidate_paths():
                if candidate.is_file() and os.access(candidate, os.X_OK):
                    found = str(candidate)
                    break
        if found:
            logger.debug("Using hugo at %s", found)
            _resolved_binary = found
        return found


def reset_hugo_cache() -> None:
    """Forget the cached binary location."""
    global _resolved_binary
    with _resolve_lock:
        _resolved_binary = None


def _platform_asset(version: str) -> tuple[str, str]:
    """Return (asset file name, archive kind) of the release for this machine."""
    machine = platform.machine().lower()
    arch = "arm64" if machine in ("arm64", "aarch64") else "amd64"
    if sys.platform == "darwin":
        return f"hugo_extended_{version}_darwin-universal.tar.gz", "tar"
    if sys.platform == "win32":
        return f"hugo_extended_{version}_windows-{arch}.zip", "zip"
    return f"hugo_extended_{version}_linux-{arch}.tar.gz", "tar"


def _extract_binary(payload: bytes, kind: str) -> bytes:
    name = _executable_name()
    if kind == "zip":
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            for member in archive.namelist():
                if Path(member).name == name:
                    return archive.read(member)
    else:
        with tarfile.open(fileobj=io.BytesIO(payload), mode="r:gz") as archive:
            for member in archive.getmembers():
                if member.isfile() and Path(member.name).name == name:
                    extracted = archive.extractfile(member)
                    if extracted is not None:
                        return extracted.read()
    raise BinaryNotFoundError(f"Release archive does not contain {name}")


def install_hugo(
    version: str | None = None,
    dest: Path | None = None,
    client: httpx.Client | None = None,
) -> Path:
    """Download a hugo release and install the binary.

    Args:
        version: Release version without the leading ``v``; latest when None.
        dest: Directory to install into (defaults to ``~/.local/bin``).
        client: Optional HTTP client (tests pass one with a mock transport).

    Returns:
        Path to the installed binary.

    Raises:
        BinaryNotFoundError: If the release cannot be fetched or unpacked.
    """
    global _resolved_binary
    dest = dest or Path.home() / ".local" / "bin"
    owns_client = client is None
    client = client or httpx.Client(follow_redirects=True, timeout=120)
    try:
        if not version:
            response = client.get(RELEASES_API)
            response.raise_for_status()
            version = str(response.json()["tag_name"]).lstrip("v")
        asset, kind = _platform_asset(version)
        url = DOWNLOAD_URL.format(version=version, asset=asset)
        logger.info("Downloading hugo %s from %s", version, url)
        response = client.get(url)
        response.raise_for_status()
        payload = response.content
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        raise BinaryNotFoundError(f"Failed to download hugo: {exc}") from exc
    finally:
        if owns_client:
            client.close()

    binary = _extract_binary(payload, kind)
    try:
        dest.mkdir(parents=True, exist_ok=True)
        target = dest / _executable_name()
        target.write_bytes(binary)
        target.chmod(0o755)
    except OSError as exc:
        raise BinaryNotFoundError(f"Failed to install hugo into {dest}: {exc}") from exc
    logger.info("Installed hugo %s to %s", version, target)
    with _resolve_lock:
        _resolved_binary = str(target)
    return target


@dataclass(frozen=True)
class ProcessResult:
    """Result of one generator invocation.

    Attributes:
        args: Arguments passed after the binary name.
        exit_code: Process exit status.
        stdout: Captured standard output (standard error merged in).
    """

    args: tuple[str, ...]
    exit_code: int
    stdout: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def check(self) -> ProcessResult:
        """Raise GeneratorExecError unless the process succeeded."""
        if not self.ok:
            raise GeneratorExecError(self.args, self.exit_code, self.stdout)
        return self


class HugoCommand:
    """Ordered hugo command: subcommand words followed by flag/value pairs.

    Examples:
        >>> HugoCommand(["server"]).flag("--bind", "127.0.0.1").flag("-D").to_args()
        ['server', '--bind', '127.0.0.1', '-D']
    """

    def __init__(self, subcommand: Iterable[str] = ()):
        self.subcommand = list(subcommand)
        self.pairs: list[tuple[str, str | None]] = []

    def flag(self, name: str, value: str | os.PathLike | None = None) -> HugoCommand:
        """Append a flag, with an optional value."""
        self.pairs.append((name, None if value is None else os.fspath(value)))
        return self

    def flags(self, pairs: Iterable[tuple[str, str | None]]) -> HugoCommand:
        for name, value in pairs:
            self.flag(name, value)
        return self

    def extend(self, tokens: Iterable[str]) -> HugoCommand:
        """Append raw tokens such as ``["-D", "--port", "1313"]``.

        A token that does not start with ``-`` becomes the value of the flag
        before it.
        """
        for token in tokens:
            if token.startswith("-") or not self.pairs or self.pairs[-1][1] is not None:
                self.pairs.append((token, None))
            else:
                name, _ = self.pairs[-1]
                self.pairs[-1] = (name, token)
        return self

    def has_flag(self, name: str) -> bool:
        return any(flag == name for flag, _ in self.pairs)

    def validate(self) -> None:
        """Check the command before it is turned into process arguments.

        Raises:
            ValueError: If a flag or value is malformed.
        """
        for word in self.subcommand:
            if not word or "\0" in word:
                raise ValueError(f"Invalid subcommand word: {word!r}")
        for name, value in self.pairs:
            if not name.startswith("-") or len(name) < 2 or "\0" in name:
                raise ValueError(f"Invalid flag: {name!r}")
            if value is not None and (value == "" or "\0" in value):
                raise ValueError(f"Invalid value for {name}: {value!r}")

    def to_args(self) -> list[str]:
        self.validate()
        args = list(self.subcommand)
        for name, value in self.pairs:
            args.append(name)
            if value is not None:
                args.append(value)
        return args

    def render(self) -> str:
        """Return the command as a shell-quoted string for display."""
        return shlex.join(["hugo", *self.to_args()])

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"HugoCommand({self.render()!r})"


def theme_flags(config: SiteConfig, themes_dir: str | None = None) -> list[tuple[str, str]]:
    """Derive the theme related flags.

    ``themes_dir`` (a call-time override) is passed as ``--themesDir``; otherwise
    ``themesDir`` from config is only used to find the default theme, which is the
    first directory in the themes directory unless config names one.

    Args:
        config: Resolved site config.
        themes_dir: Optional themes directory override.

    Returns:
        List of (flag, value) pairs.
    """
    pairs: list[tuple[str, str]] = []
    if themes_dir:
        pairs.append(("--themesDir", themes_dir))
        directory = Path(themes_dir)
    else:
        directory = Path(config.themes_dir)
    if not directory.is_absolute():
        directory = config.root / directory
    theme = config.theme
    if theme is None and directory.is_dir():
        installed = sorted(
            p.name for p in directory.iterdir() if p.is_dir() and not p.name.startswith(".")
        )
        theme = installed[0] if installed else None
    if theme:
        pairs.append(("-t", theme))
    return pairs


def site_base_dir(config: SiteConfig) -> str:
    """Return the path part of ``baseurl`` (``/`` when it has none)."""
    base = re.sub(r"^[a-zA-Z][a-zA-Z0-9+.-]*://[^/]*", "", config.base_url)
    if not base:
        return "/"
    return base if base.endswith("/") else f"{base}/"


def build_command(
    config: SiteConfig,
    local: bool = False,
    themes_dir: str | None = None,
    output_dir: str | None = None,
) -> HugoCommand:
    """Build the bare ``hugo`` render command.

    Args:
        config: Resolved site config.
        local: Render for local preview (base dir, drafts, and future content).
        themes_dir: Optional themes directory override.
        output_dir: Optional output directory override.

    Returns:
        HugoCommand ready to run in the project root.
    """
    command = HugoCommand()
    if local:
        command.flag("-b", site_base_dir(config)).flag("-D").flag("-F")
    command.flag("-d", output_dir or config.publish_dir)
    command.flags(theme_flags(config, themes_dir))
    return command


def convert_command(to: str = "YAML", unsafe: bool = False, extra: Sequence[str] = ()) -> HugoCommand:
    """Build ``hugo convert to<DIALECT> [--unsafe]``."""
    dialect = to.upper()
    if dialect not in CONVERT_DIALECTS:
        raise ValueError(f"Cannot convert to {to!r}; expected one of {', '.join(CONVERT_DIALECTS)}")
    command = HugoCommand(["convert", f"to{dialect}"])
    if unsafe:
        command.flag("--unsafe")
    return command.extend(extra)


def parse_version(text: str) -> tuple[int, ...] | None:
    """Extract the leading numeric version from ``hugo version`` output.

    Issues a VersionParseWarning (and logs the raw text) when the output does not
    have the expected shape.
    """
    match = VERSION_RE.search(text)
    if match:
        parts = [p for p in match.group(1).split(".") if p]
        if parts:
            return tuple(int(p) for p in parts)
    warnings.warn("Cannot extract the version number from hugo", VersionParseWarning, stacklevel=2)
    logger.warning("Unexpected hugo version output:\n%s", text)
    return None


class Hugo:
    """Runs the hugo binary.

    Attributes:
        install_missing: Install hugo when it cannot be found.
        install_version: Version to install in that case.
    """

    def __init__(
        self,
        binary: str | None = None,
        install_missing: bool = False,
        install_version: str | None = None,
    ):
        self._binary = binary
        self.install_missing = install_missing
        self.install_version = install_version

    @property
    def binary(self) -> str:
        """Path to the binary, resolved on first use.

        Raises:
            BinaryNotFoundError: If hugo is missing and cannot be installed.
        """
        if self._binary is None:
            found = find_hugo()
            if found is None:
                if not self.install_missing:
                    raise BinaryNotFoundError(
                        "hugo was not found; install it or run `sitewright install-hugo`"
                    )
                found = str(install_hugo(self.install_version))
            self._binary = found
        return self._binary

    def invoke(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        cancel: threading.Event | None = None,
    ) -> ProcessResult:
        """Run hugo and wait for it to exit.

        Args:
            args: Arguments after the binary name.
            cwd: Working directory for the process.
            cancel: Checked once before spawning; a set token aborts the call.

        Returns:
            ProcessResult with the exit code and captured output.

        Raises:
            BuildCancelled: If ``cancel`` is set before the process starts.
            BinaryNotFoundError: If the binary cannot be executed.
        """
        if cancel is not None and cancel.is_set():
            raise BuildCancelled("Cancelled before starting hugo")
        argv = [self.binary, *args]
        logger.debug("Running %s", shlex.join(argv))
        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise BinaryNotFoundError(f"Cannot execute {self.binary}: {exc}") from exc
        return ProcessResult(args=tuple(args), exit_code=completed.returncode, stdout=completed.stdout or "")

    def run(
        self,
        command: HugoCommand,
        cwd: Path | None = None,
        cancel: threading.Event | None = None,
    ) -> ProcessResult:
        """Run a validated command and raise GeneratorExecError on failure."""
        return self.invoke(command.to_args(), cwd=cwd, cancel=cancel).check()

    def spawn(self, command: HugoCommand, cwd: Path | None = None) -> subprocess.Popen:
        """Start a long-running hugo process (the preview server)."""
        argv = [self.binary, *command.to_args()]
        logger.debug("Starting %s", shlex.join(argv))
        return subprocess.Popen(argv, cwd=cwd)

    def version(self) -> tuple[int, ...] | None:
        """Return the binary's version, or None when it cannot be parsed."""
        result = self.invoke(["version"])
        return parse_version(result.stdout)
