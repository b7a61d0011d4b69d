"""Build orchestration for Sitewright.

One build cycle runs four steps, always in this order and never overlapping:

1. resolve the site config (read fresh from disk every cycle),
2. compile the source documents whose fingerprints changed,
3. run hugo once over the whole site,
4. reconcile: check the output and persist the fingerprint store.

``Orchestrator.build`` runs one cycle. ``Orchestrator.watch`` runs a cycle, then one
more per batch of file changes until it is stopped. Only one cycle runs at a time:
the watchdog observer thread merely queues changed paths, and a per-project lock
guards the cycle itself.

Key classes:
- BuildPlan: What a cycle is going to do.
- BuildResult: What a cycle did.
- Orchestrator: Runs cycles and the watch loop.
"""

from __future__ import annotations

import hashlib
import queue
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .compiler import STATE_DIR, STORE_NAME, DocumentCompiler, FingerprintStore
from .config import SiteConfig, load_config
from .errors import BuildCancelled, FilesystemError, GeneratorExecError, SitewrightError
from .hugo import Hugo, HugoCommand, build_command
from .logging import get_logger
from .options import SiteOptions, load_options
from .protocols import GeneratorRunner
from .renderers import JinjaRenderer, RendererRegistry
from .utils import clean_empty_dir, is_hidden

logger = get_logger("orchestrator")

# Directories hugo creates as a side effect of rendering.
SIDE_EFFECT_DIRS = ("resources",)
IGNORED_DIRS = {STATE_DIR, ".git", ".hg", ".svn", "node_modules"}
WATCHED_EVENTS = ("created", "modified", "deleted", "moved")


@dataclass
class BuildPlan:
    """The work of one build cycle.

    Attributes:
        config: Site config resolved for this cycle.
        full: Whether every document is compiled.
        sources: All source documents.
        documents: Source documents that will be compiled.
        command: Generator command for the render step.
        output_dir: Directory hugo writes the site into.
        compiler: Compiler bound to this cycle's config and fingerprint store.
    """

    config: SiteConfig
    full: bool
    sources: list[Path]
    documents: list[Path]
    command: HugoCommand
    output_dir: Path
    compiler: DocumentCompiler = field(repr=False)


@dataclass
class BuildResult:
    """Outcome of one build cycle.

    Attributes:
        output_dir: Directory the site was rendered into.
        full: Whether the cycle compiled every document.
        compiled: Documents compiled in this cycle.
        skipped: Documents whose fingerprint was unchanged.
        removed: Compiled files deleted because their source is gone.
        output: Captured generator output.
        error: Error of a failed watch cycle (``build`` raises instead).
    """

    output_dir: Path | None
    full: bool = False
    compiled: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    output: str = ""
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Orchestrator:
    """Runs build cycles for one project.

    Attributes:
        project_root: Root directory of the project.
        options: Project options.
        runner: Generator used for rendering and conversions.
        registry: Renderers for source documents.
        debounce_seconds: Quiet period that closes a batch of file changes.
    """

    def __init__(
        self,
        project_root: Path,
        options: SiteOptions | None = None,
        runner: GeneratorRunner | None = None,
        registry: RendererRegistry | None = None,
    ):
        self.project_root = project_root.resolve()
        self.options = options or load_options(self.project_root)
        self.runner = runner or Hugo(
            install_missing=self.options.install_hugo,
            install_version=self.options.hugo_version,
        )
        self.registry = registry
        self.debounce_seconds = 0.2
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._events: queue.Queue[Path | None] = queue.Queue()
        self._ignored_roots: list[Path] = []
        self._targets: frozenset[Path] = frozenset()

    @property
    def store_path(self) -> Path:
        return self.project_root / STATE_DIR / STORE_NAME

    # -- planning ---------------------------------------------------------

    def _context_digest(self, config: SiteConfig) -> str:
        return hashlib.sha256(config.path.read_bytes()).hexdigest()

    def _registry(self, config: SiteConfig) -> RendererRegistry:
        if self.registry is not None:
            return self.registry
        return RendererRegistry([JinjaRenderer([self.project_root / config.content_dir])])

    def plan(self, full: bool = False, local: bool = False) -> BuildPlan:
        """Compute the work of a cycle from the current state of the project.

        The plan is full when requested, or when the fingerprint store is missing,
        unreadable, or was written for a different site config.
        """
        config = load_config(self.project_root)
        store = FingerprintStore.load(self.store_path, self._context_digest(config))
        compiler = DocumentCompiler(
            self.project_root,
            store,
            self.runner,
            registry=self._registry(config),
            context={"site": config.data},
        )
        sources = list(compiler.discover(self.project_root / config.content_dir))
        full = full or not store.valid
        documents = sources if full else [s for s in sources if compiler.is_stale(s)]
        command = build_command(config, local=local, themes_dir=self.options.themes_dir)
        output_dir = self.project_root / config.publish_dir
        self._ignored_roots = [output_dir] + [self.project_root / d for d in SIDE_EFFECT_DIRS]
        self._targets = frozenset(compiler.target_for(s) for s in sources)
        return BuildPlan(
            config=config,
            full=full,
            sources=sources,
            documents=documents,
            command=command,
            output_dir=output_dir,
            compiler=compiler,
        )

    # -- cycle steps --------------------------------------------------------

    def _compile(self, plan: BuildPlan, result: BuildResult) -> None:
        compiler = plan.compiler
        pending = set(plan.documents)
        try:
            for source in plan.sources:
                if source in pending:
                    compiler.compile(source, force=plan.full)
                    result.compiled.append(source)
                else:
                    result.skipped.append(source)
            self._remove_orphans(plan, result)
        finally:
            # Documents compiled before a failure stay recorded.
            compiler.store.persist()

    def _remove_orphans(self, plan: BuildPlan, result: BuildResult) -> None:
        store = plan.compiler.store
        known = {plan.compiler.key(s) for s in plan.sources}
        for key in store.keys():
            if key in known:
                continue
            entry = store.forget(key) or {}
            target = self.project_root / str(entry.get("target", ""))
            if target.is_file() and target != self.project_root:
                try:
                    target.unlink()
                except OSError as exc:
                    raise FilesystemError("remove", target, exc) from exc
                result.removed.append(target)
                logger.info("Removed %s (source deleted)", target.relative_to(self.project_root))

    @contextmanager
    def _side_effects_removed(self):
        """Remove empty directories hugo creates as a side effect of a run."""
        existed = {name: (self.project_root / name).exists() for name in SIDE_EFFECT_DIRS}
        try:
            yield
        finally:
            for name, was_there in existed.items():
                if not was_there and clean_empty_dir(self.project_root / name):
                    logger.debug("Removed empty %s/", name)

    def _generate(
        self, plan: BuildPlan, result: BuildResult, cancel: threading.Event | None
    ) -> None:
        logger.info("Running %s", plan.command.render())
        with self._side_effects_removed():
            process = self.runner.invoke(
                plan.command.to_args(), cwd=self.project_root, cancel=cancel
            )
        result.output = process.stdout
        process.check()

    def _reconcile(self, plan: BuildPlan, result: BuildResult) -> None:
        if not plan.output_dir.is_dir():
            logger.warning("hugo finished but %s does not exist", plan.output_dir)
        plan.compiler.store.persist()
        logger.info(
            "Compiled %d of %d documents; site written to %s",
            len(result.compiled),
            len(plan.sources),
            plan.output_dir,
        )

    # -- public operations --------------------------------------------------

    def build(
        self,
        local: bool = False,
        full: bool = False,
        cancel: threading.Event | None = None,
    ) -> BuildResult:
        """Run one build cycle.

        With ``local`` the site is rendered for preview: rooted at the base dir of
        ``baseurl``, with drafts and future content. The override only exists on
        the command line; the config file is never written.

        Args:
            local: Render for local preview.
            full: Compile every document regardless of fingerprints.
            cancel: Checked before hugo is started.

        Returns:
            BuildResult describing the cycle.

        Raises:
            ConfigError: If the site config is invalid.
            CompileError: If a document fails to compile.
            GeneratorExecError: If hugo exits with a non-zero status.
        """
        with self._lock:
            plan = self.plan(full=full, local=local)
            result = BuildResult(output_dir=plan.output_dir, full=plan.full)
            self._compile(plan, result)
            self._generate(plan, result, cancel)
            self._reconcile(plan, result)
            return result

    def compile_documents(self, full: bool = False) -> BuildResult:
        """Run the config and compile steps only.

        Used while ``hugo server`` renders the site by itself.
        """
        with self._lock:
            plan = self.plan(full=full)
            result = BuildResult(output_dir=plan.output_dir, full=plan.full)
            self._compile(plan, result)
            return result

    # -- watch loop ---------------------------------------------------------

    def notify(self, path: Path) -> None:
        """Queue a changed path unless it is produced by the build itself."""
        if not self._is_ignored(path):
            self._events.put(path)

    def _is_ignored(self, path: Path) -> bool:
        try:
            rel = path.relative_to(self.project_root)
        except ValueError:
            return True
        if not rel.parts or rel.parts[0] in IGNORED_DIRS or is_hidden(rel):
            return True
        for root in self._ignored_roots:
            if path == root or root in path.parents:
                return True
        return path in self._targets

    def stop(self) -> None:
        """Ask the watch loop to end after the current cycle."""
        self._stop.set()
        self._events.put(None)

    def _next_batch(self) -> list[Path]:
        """Block until a change arrives, then collect until things go quiet."""
        batch: list[Path] = []
        while not batch:
            if self._stop.is_set():
                return []
            try:
                item = self._events.get(timeout=0.5)
            except queue.Empty:
                continue
            if item is None:
                return []
            batch.append(item)
        while True:
            try:
                item = self._events.get(timeout=self.debounce_seconds)
            except queue.Empty:
                return batch
            if item is None:
                self._stop.set()
                return batch
            batch.append(item)

    def _cycle(self, local: bool, generate: bool) -> BuildResult:
        try:
            if generate:
                return self.build(local=local, cancel=self._stop)
            return self.compile_documents()
        except BuildCancelled as exc:
            logger.info("Build cancelled")
            return BuildResult(output_dir=None, error=exc)
        except GeneratorExecError as exc:
            logger.error("%s\n%s", exc, exc.output)
            return BuildResult(output_dir=None, output=exc.output, error=exc)
        except SitewrightError as exc:
            logger.error("%s", exc)
            return BuildResult(output_dir=None, error=exc)

    def _start_observer(self) -> Observer:
        observer = Observer()
        observer.schedule(_ChangeHandler(self), str(self.project_root), recursive=True)
        observer.start()
        return observer

    def watch(self, local: bool = True, generate: bool = True) -> Iterator[BuildResult]:
        """Build now, then once per batch of changes until ``stop`` is called.

        A failed cycle is logged and yielded with ``error`` set; the loop keeps
        going. Stopping never interrupts a running hugo process: the request is
        honoured between cycles, or before hugo is started.

        Args:
            local: Render for local preview.
            generate: Run hugo in each cycle (False only compiles documents).

        Yields:
            One BuildResult per cycle.
        """
        self._stop.clear()
        while not self._events.empty():
            self._events.get_nowait()
        observer = self._start_observer()
        try:
            yield self._cycle(local, generate)
            while not self._stop.is_set():
                batch = self._next_batch()
                if not batch:
                    continue
                logger.info("Change detected (%d paths); rebuilding...", len(set(batch)))
                started = time.monotonic()
                result = self._cycle(local, generate)
                logger.debug("Cycle finished in %.2fs", time.monotonic() - started)
                yield result
        finally:
            observer.stop()
            observer.join()


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, orchestrator: Orchestrator):
        super().__init__()
        self.orchestrator = orchestrator

    def on_any_event(self, event):
        if event.is_directory or event.event_type not in WATCHED_EVENTS:
            return
        self.orchestrator.notify(Path(event.src_path))
        dest = getattr(event, "dest_path", "")
        if dest:
            self.orchestrator.notify(Path(dest))
