"""Preview server for Sitewright.

``hugo server`` renders and live-reloads the site on its own; this module starts it
with the right flags and keeps compiling source documents next to it. Compiled
files are replaced atomically, so the server never picks up a half-written file.

Key pieces:
- server_command: Builds ``hugo server --bind <host> -p <port> [flags]``.
- PreviewServer: Runs the server process alongside the compile loop.
"""

from __future__ import annotations

import subprocess
import threading
from pathlib import Path

from .config import SiteConfig, load_config
from .hugo import Hugo, HugoCommand, theme_flags
from .logging import get_logger
from .options import SiteOptions, load_options
from .orchestrator import Orchestrator

logger = get_logger("server")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4321


def server_command(
    host: str, port: int, options: SiteOptions, config: SiteConfig
) -> HugoCommand:
    """Build the ``hugo server`` command.

    Args:
        host: Address to bind.
        port: Port to listen on.
        options: Project options (``server_flags`` and ``themes_dir``).
        config: Resolved site config.

    Returns:
        HugoCommand for the server subcommand.
    """
    command = HugoCommand(["server"]).flag("--bind", host).flag("-p", str(port))
    command.extend(options.server_flags)
    return command.flags(theme_flags(config, options.themes_dir))


class PreviewServer:
    """Local preview: ``hugo server`` plus the document compile loop.

    Attributes:
        project_root: Root directory of the project.
        host: Address the server binds.
        port: Port the server listens on.
        options: Project options.
        hugo: Adapter used to start the server.
        orchestrator: Compiles documents while the server runs.
    """

    def __init__(
        self,
        project_root: Path,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        options: SiteOptions | None = None,
        hugo: Hugo | None = None,
        orchestrator: Orchestrator | None = None,
    ):
        self.project_root = project_root.resolve()
        self.host = host
        self.port = port
        self.options = options or load_options(self.project_root)
        self.hugo = hugo or Hugo(
            install_missing=self.options.install_hugo,
            install_version=self.options.hugo_version,
        )
        self.orchestrator = orchestrator or Orchestrator(
            self.project_root, self.options, runner=self.hugo
        )
        self._process: subprocess.Popen | None = None
        self._stop_timeout = 10

    def start(self) -> None:  # pragma: no cover - integration path
        """Compile, start the server, and recompile on changes until interrupted.

        The server is started only after the first compile cycle, so its first
        render already sees every compiled document.
        """
        try:
            for result in self.orchestrator.watch(local=True, generate=False):
                if self._process is None:
                    self._spawn()
                elif result.ok and result.compiled:
                    logger.info("Recompiled %d document(s)", len(result.compiled))
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def _spawn(self) -> subprocess.Popen:
        config = load_config(self.project_root)
        command = server_command(self.host, self.port, self.options, config)
        logger.info("Serving at http://%s:%s/ (%s)", self.host, self.port, command.render())
        self._process = self.hugo.spawn(command, cwd=self.project_root)
        threading.Thread(target=self._wait_for_exit, args=(self._process,), daemon=True).start()
        return self._process

    def _wait_for_exit(self, process: subprocess.Popen) -> None:
        status = process.wait()
        if status != 0:
            logger.error("hugo server exited with status %s", status)
        self.orchestrator.stop()

    def stop(self) -> None:
        """Stop the compile loop and the server process."""
        self.orchestrator.stop()
        process = self._process
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=self._stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("hugo server did not exit; killing it")
            process.kill()
            process.wait()
