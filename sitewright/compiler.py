"""Document compilation for Sitewright.

Source documents (``*.md.jinja`` and friends) are rendered into the plain content
files hugo reads. Compilation is incremental: each successful compile records a
fingerprint of the source (its project-relative path plus a SHA-256 of its bytes)
and of every file it included, and a document is compiled again only when one of
those fingerprints changes or its output is missing. Modification times are stored for diagnostics but never decide
whether a document is current.

Compiled files always carry YAML front matter. Hugo cannot convert a single file,
so other dialects are converted in a throwaway project holding just that file.

Key classes:
- FingerprintStore: Persistent record of the last successful compile per document.
- DocumentCompiler: Renders one document and writes its compiled file.
"""

from __future__ import annotations

import hashlib
import json
import tempfile
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import TemplateSyntaxError

from .errors import CompileError, FilesystemError
from .frontmatter import front_matter_dialect, split_front_matter
from .hugo import convert_command
from .logging import get_logger
from .protocols import GeneratorRunner
from .renderers import RendererRegistry
from .utils import atomic_write_text, is_hidden, is_internal_path

logger = get_logger("compiler")

STATE_DIR = ".sitewright"
STORE_NAME = "fingerprints.json"
STORE_VERSION = 1

SCRATCH_CONFIG = 'baseurl = "/"\nbuilddrafts = true\n'


def content_digest(key: str, data: bytes) -> str:
    """Hash a document's relative path together with its bytes."""
    digest = hashlib.sha256()
    digest.update(key.encode("utf-8"))
    digest.update(b"\0")
    digest.update(data)
    return digest.hexdigest()


class FingerprintStore:
    """Stores the fingerprint of the last successful compile of each document.

    A store is ``valid`` only when it was read from disk, parsed, has the current
    format version and was written for the same context digest (a hash of the
    site config). Anything else means every document has to be compiled again.

    Attributes:
        path: JSON file backing the store.
        context: Digest of the inputs shared by every document.
        valid: Whether the loaded entries can be trusted.
    """

    def __init__(self, path: Path, context: str = ""):
        self.path = path
        self.context = context
        self.valid = False
        self._entries: dict[str, dict[str, Any]] = {}
        self._dirty = False

    @classmethod
    def load(cls, path: Path, context: str = "") -> FingerprintStore:
        store = cls(path, context)
        if not path.exists():
            logger.debug("No fingerprint store at %s", path)
            return store
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable fingerprint store %s: %s", path, exc)
            return store
        if not isinstance(payload, dict) or payload.get("version") != STORE_VERSION:
            logger.warning("Ignoring fingerprint store %s with unknown format", path)
            return store
        entries = payload.get("entries")
        if not isinstance(entries, dict):
            return store
        store._entries = {k: v for k, v in entries.items() if isinstance(v, dict)}
        if payload.get("context") != context:
            logger.info("Site configuration changed; all documents will be recompiled")
            # Targets are kept so outputs of deleted sources can still be found.
            for entry in store._entries.values():
                entry.pop("digest", None)
            store._dirty = True
            return store
        store.valid = True
        return store

    def get(self, key: str) -> dict[str, Any] | None:
        return self._entries.get(key)

    def is_current(self, key: str, digest: str, root: Path | None = None) -> bool:
        """Check a document's digest against its last successful compile.

        With ``root``, the files the document included are hashed again (paths
        are stored relative to ``root``) and any change or missing file makes
        the document stale.
        """
        entry = self._entries.get(key)
        if not (self.valid and entry and entry.get("digest") == digest):
            return False
        if root is None:
            return True
        for dep_key, dep_digest in (entry.get("dependencies") or {}).items():
            try:
                data = (root / dep_key).read_bytes()
            except OSError:
                return False
            if content_digest(dep_key, data) != dep_digest:
                logger.debug("%s changed; %s is stale", dep_key, key)
                return False
        return True

    def record(
        self,
        key: str,
        digest: str,
        target: str,
        mtime_ns: int,
        dependencies: dict[str, str] | None = None,
    ) -> None:
        self._entries[key] = {
            "digest": digest,
            "target": target,
            "mtime_ns": mtime_ns,
            "compiled_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        if dependencies:
            self._entries[key]["dependencies"] = dict(sorted(dependencies.items()))
        self._dirty = True

    def forget(self, key: str) -> dict[str, Any] | None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._dirty = True
        return entry

    def keys(self) -> list[str]:
        return sorted(self._entries)

    def targets(self) -> set[str]:
        return {str(e["target"]) for e in self._entries.values() if e.get("target")}

    def persist(self) -> None:
        """Write the store atomically, marking it valid for its context."""
        if not self._dirty and self.valid:
            return
        payload = {
            "version": STORE_VERSION,
            "context": self.context,
            "entries": self._entries,
        }
        atomic_write_text(self.path, json.dumps(payload, indent=2, sort_keys=True))
        self.valid = True
        self._dirty = False


def normalize_text(text: str, filename: str, runner: GeneratorRunner) -> str:
    """Convert a document's front matter to YAML using a scratch hugo project.

    The scratch directory holds only ``content/<filename>`` and a minimal config
    and is removed whether or not the conversion succeeds.

    Args:
        text: Document text.
        filename: Name to give the document inside the scratch project.
        runner: Generator used to run ``hugo convert toYAML --unsafe``.

    Returns:
        The converted document text.

    Raises:
        GeneratorExecError: If the conversion fails.
        FilesystemError: If the scratch project cannot be written or read.
    """
    with tempfile.TemporaryDirectory(prefix="sitewright-") as scratch:
        root = Path(scratch)
        document = root / "content" / filename
        try:
            document.parent.mkdir()
            document.write_text(text, encoding="utf-8")
            (root / "config.toml").write_text(SCRATCH_CONFIG, encoding="utf-8")
        except OSError as exc:
            raise FilesystemError("create scratch project in", root, exc) from exc
        runner.invoke(convert_command("YAML", unsafe=True).to_args(), cwd=root).check()
        try:
            return document.read_text(encoding="utf-8")
        except OSError as exc:
            raise FilesystemError("read converted document", document, exc) from exc


def normalize_front_matter(path: Path, runner: GeneratorRunner) -> bool:
    """Rewrite a content file's front matter as YAML if it uses another dialect.

    Returns:
        True if the file was rewritten.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise CompileError(path, f"Not valid UTF-8: {exc}", exc) from exc
    except OSError as exc:
        raise FilesystemError("read", path, exc) from exc
    if front_matter_dialect(text) in (None, "yaml"):
        return False
    atomic_write_text(path, normalize_text(text, path.name, runner))
    return True


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateNotFound":
        return f"Included template not found: {error_msg}"
    return f"{error_type}: {error_msg}"


class DocumentCompiler:
    """Compiles source documents into plain content files.

    Attributes:
        project_root: Root directory of the project.
        store: Fingerprint store consulted and updated by each compile.
        runner: Generator used for front matter conversion.
        registry: Renderers for the supported source formats.
        context: Variables available to every document.
    """

    def __init__(
        self,
        project_root: Path,
        store: FingerprintStore,
        runner: GeneratorRunner,
        registry: RendererRegistry | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.project_root = project_root
        self.store = store
        self.runner = runner
        self.registry = registry or RendererRegistry()
        self.context = context or {}

    def key(self, source: Path) -> str:
        return source.relative_to(self.project_root).as_posix()

    def target_for(self, source: Path) -> Path:
        renderer = self.registry.get_renderer(source)
        if renderer is None:
            raise CompileError(source, "No renderer for this file type")
        return renderer.target_path(source)

    def fingerprint(self, source: Path) -> str:
        key = self.key(source)
        try:
            data = source.read_bytes()
        except OSError as exc:
            raise FilesystemError("read", source, exc) from exc
        return content_digest(key, data)

    def is_stale(self, source: Path) -> bool:
        """Check whether a document needs compiling."""
        if not self.target_for(source).exists():
            return True
        return not self.store.is_current(
            self.key(source), self.fingerprint(source), self.project_root
        )

    def _dependency_digests(self, source: Path, paths: Iterable[Path]) -> dict[str, str]:
        digests = {}
        for path in paths:
            if path == source:
                continue
            try:
                dep_key = path.relative_to(self.project_root).as_posix()
            except ValueError:
                dep_key = str(path)
            try:
                digests[dep_key] = content_digest(dep_key, path.read_bytes())
            except OSError as exc:
                raise FilesystemError("read", path, exc) from exc
        return digests

    def discover(self, content_dir: Path) -> Iterator[Path]:
        """Yield source documents under a content directory in sorted order.

        Hidden paths and directories starting with ``_`` are skipped.
        """
        if not content_dir.is_dir():
            return
        for path in sorted(content_dir.rglob("*")):
            if not path.is_file():
                continue
            rel = path.relative_to(content_dir)
            if is_hidden(rel) or is_internal_path(rel):
                continue
            if self.registry.is_source(path):
                yield path

    def compile(self, source: Path, force: bool = False) -> Path:
        """Compile one document unless its fingerprint is unchanged.

        Args:
            source: Source document.
            force: Compile even if the fingerprint is current.

        Returns:
            Path of the compiled file.

        Raises:
            CompileError: If the document cannot be rendered.
            GeneratorExecError: If front matter conversion fails.
            FilesystemError: If reading or writing fails.
        """
        key = self.key(source)
        digest = self.fingerprint(source)
        target = self.target_for(source)
        if (
            not force
            and target.exists()
            and self.store.is_current(key, digest, self.project_root)
        ):
            logger.debug("Unchanged: %s", key)
            return target

        renderer = self.registry.get_renderer(source)
        try:
            raw = source.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise CompileError(source, f"Not valid UTF-8: {exc}", exc) from exc
        except OSError as exc:
            raise FilesystemError("read", source, exc) from exc
        page, _ = split_front_matter(raw)
        context = {**self.context, "page": page, "source": key}
        try:
            text = renderer.render(source, context)
        except TemplateSyntaxError as exc:
            raise CompileError(
                source, f"Template syntax error on line {exc.lineno}: {exc.message}", exc
            ) from exc
        except Exception as exc:
            raise CompileError(source, _format_error_message(exc), exc) from exc

        if front_matter_dialect(text) not in (None, "yaml"):
            text = normalize_text(text, target.name, self.runner)

        dependencies = self._dependency_digests(source, getattr(renderer, "dependencies", ()))
        atomic_write_text(target, text)
        self.store.record(
            key,
            digest,
            target.relative_to(self.project_root).as_posix(),
            source.stat().st_mtime_ns,
            dependencies,
        )
        logger.info("Compiled %s", key)
        return target
