"""Dependency closure tracing.

A tracer answers one question: starting from a set of entry files, which
files (relative to the workspace root) are needed at runtime? The
pipeline treats the answer as authoritative; unresolvable references are
simply absent from it.

Two tracers satisfy the ``ClosureTracer`` contract:

- ``ImportScanTracer``: pure Python. Scans JavaScript/TypeScript sources
  for ``require()`` / ``import`` / ``export ... from`` specifiers and
  resolves them the way Node does (extension probing, ``package.json``
  ``main``, ``index`` files, ``node_modules`` lookup, scoped packages).
- ``NodeFileTracer``: hands the entries to ``@vercel/nft`` in a ``node``
  subprocess and reads the file list back as JSON.

Symlinks inside the workspace (e.g. yarn workspace links under
``node_modules``) are reported as members themselves and the files behind
them are reported by their real path, so no member path ever runs through
a link. Every recorded file also brings in its package boundary: the
nearest ``package.json`` at or above it inside the workspace, which
carries ``type``, ``exports`` and other metadata Node reads at runtime.
"""

from __future__ import annotations

import json
import os
import re
import subprocess
import textwrap
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from isolator.core.errors import CollaboratorError, ConfigurationError
from isolator.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ClosureTracer(Protocol):
    """Contract: entries + base -> set of base-relative POSIX paths."""

    def trace(self, entries: Iterable[str], base: Path, process_cwd: Path) -> set[str]:
        """Return the transitive runtime closure of *entries*.

        *entries* are relative to *process_cwd*; results are relative to
        *base*.
        """
        ...


# ---------------------------------------------------------------------------
# Import scanner
# ---------------------------------------------------------------------------

SCANNABLE_SUFFIXES = frozenset({".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx", ".mts", ".cts"})
RESOLVE_EXTENSIONS = (".js", ".mjs", ".cjs", ".json", ".node", ".ts", ".tsx")

NODE_BUILTINS = frozenset({
    "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
    "constants", "crypto", "dgram", "diagnostics_channel", "dns", "domain",
    "events", "fs", "http", "http2", "https", "inspector", "module", "net",
    "os", "path", "perf_hooks", "process", "punycode", "querystring",
    "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
    "trace_events", "tty", "url", "util", "v8", "vm", "wasi",
    "worker_threads", "zlib",
})

_SPECIFIER_PATTERNS = (
    re.compile(r"""\brequire(?:\.resolve)?\s*\(\s*(['"`])([^'"`\n]+)\1\s*[,)]"""),
    re.compile(r"""\bimport\s*\(\s*(['"`])([^'"`\n]+)\1\s*[,)]"""),
    re.compile(r"""\b(?:import|export)\b[^'"`;]*?\bfrom\s*(['"])([^'"\n]+)\1"""),
    re.compile(r"""(?:^|[;\s])import\s*(['"])([^'"\n]+)\1""", re.MULTILINE),
)


def strip_comments(source: str) -> str:
    """Drop ``//`` and ``/* */`` comments, leaving string literals intact.

    Quoted strings end at their closing quote or at a newline; template
    literals run to the closing backtick. A block comment becomes a
    single space (or its newlines) so neighbouring tokens stay apart.
    Regex literals are not recognised.
    """
    out: list[str] = []
    i, n = 0, len(source)
    quote: str | None = None
    while i < n:
        ch = source[i]
        if quote is not None:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(source[i + 1])
                i += 2
                continue
            if ch == quote or (ch == "\n" and quote != "`"):
                quote = None
            i += 1
            continue
        if ch in "'\"`":
            quote = ch
            out.append(ch)
            i += 1
        elif source.startswith("//", i):
            end = source.find("\n", i)
            i = n if end == -1 else end
        elif source.startswith("/*", i):
            end = source.find("*/", i + 2)
            stop = n if end == -1 else end + 2
            out.append("\n" * source.count("\n", i, stop) or " ")
            i = stop
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def find_specifiers(source: str) -> list[str]:
    """Extract module specifiers from JS/TS *source*, in order of appearance."""
    stripped = strip_comments(source)
    found: list[tuple[int, str]] = []
    for pattern in _SPECIFIER_PATTERNS:
        found.extend((m.start(), m.group(2)) for m in pattern.finditer(stripped))
    seen: set[str] = set()
    ordered: list[str] = []
    for _, spec in sorted(found):
        if spec not in seen:
            seen.add(spec)
            ordered.append(spec)
    return ordered


def is_builtin(specifier: str) -> bool:
    if specifier.startswith("node:"):
        return True
    return specifier.split("/", 1)[0] in NODE_BUILTINS


def split_package_specifier(specifier: str) -> tuple[str, str]:
    """Split ``@scope/name/sub/path`` into ``("@scope/name", "sub/path")``."""
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return "/".join(parts[:2]), "/".join(parts[2:])
    return parts[0], "/".join(parts[1:])


class ImportScanTracer:
    """Static ``require``/``import`` scanner with Node-style resolution.

    Dynamic specifiers (template literals with substitutions, computed
    ``require(name)``) are not followed.
    """

    def __init__(self, extensions: tuple[str, ...] = RESOLVE_EXTENSIONS) -> None:
        self._extensions = extensions

    def trace(self, entries: Iterable[str], base: Path, process_cwd: Path) -> set[str]:
        base = Path(base).resolve()
        cwd = Path(process_cwd)
        closure: set[str] = set()
        queue: list[Path] = []
        visited: set[Path] = set()

        for entry in entries:
            self._record(cwd / entry, base, closure, queue)

        while queue:
            current = queue.pop()
            if current in visited:
                continue
            visited.add(current)
            if current.suffix not in SCANNABLE_SUFFIXES:
                continue
            try:
                source = current.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.debug("closure.unreadable", path=str(current), error=str(exc))
                continue
            for specifier in find_specifiers(source):
                if is_builtin(specifier):
                    continue
                resolved = self._resolve(specifier, current.parent, base, closure)
                if resolved is None:
                    logger.debug("closure.unresolved", importer=str(current), specifier=specifier)
                    continue
                self._record(resolved, base, closure, queue)

        logger.debug("closure.scanned", files=len(visited), members=len(closure))
        return closure

    # -- recording -----------------------------------------------------------

    def _record(self, path: Path, base: Path, closure: set[str], queue: list[Path]) -> None:
        """Add *path* (and any workspace symlinks on the way to it) to the closure."""
        path = Path(os.path.abspath(path))
        if not path.exists():
            return
        self._record_links(path, base, closure)
        real = path.resolve()
        rel = _relative_to(real, base)
        if rel is None:
            return
        closure.add(rel)
        queue.append(real)
        self._record_boundary(real, base, closure)

    @staticmethod
    def _record_boundary(real: Path, base: Path, closure: set[str]) -> None:
        """Add the nearest ``package.json`` at or above *real*, within *base*."""
        for directory in real.parents:
            if _relative_to(directory, base) is None:
                return
            manifest = directory / "package.json"
            if manifest.is_file():
                closure.add(manifest.relative_to(base).as_posix())
                return

    @staticmethod
    def _record_links(path: Path, base: Path, closure: set[str]) -> None:
        rel = _relative_to(path, base)
        if rel is None:
            return
        walked = base
        for part in Path(rel).parts:
            walked = walked / part
            if walked.is_symlink():
                closure.add(walked.relative_to(base).as_posix())
                target = walked.resolve()
                if _relative_to(target, base) is None:
                    return
                walked = target

    # -- resolution ----------------------------------------------------------

    def _resolve(self, specifier: str, directory: Path, base: Path, closure: set[str]) -> Path | None:
        if specifier.startswith(("./", "../", "/")) or specifier in (".", ".."):
            return self._resolve_path(directory / specifier, closure)
        return self._resolve_package(specifier, directory, base, closure)

    def _resolve_package(self, specifier: str, directory: Path, base: Path, closure: set[str]) -> Path | None:
        name, subpath = split_package_specifier(specifier)
        for candidate_dir in (directory, *directory.parents):
            package_dir = candidate_dir / "node_modules" / name
            if package_dir.is_dir():
                manifest = package_dir / "package.json"
                if manifest.is_file():
                    self._add_manifest(manifest, base, closure)
                if subpath:
                    return self._resolve_path(package_dir / subpath, closure)
                return self._resolve_directory(package_dir, closure)
            if candidate_dir == base:
                break
        return None

    def _resolve_path(self, candidate: Path, closure: set[str]) -> Path | None:
        hit = self._resolve_file(candidate)
        if hit is not None:
            return hit
        if candidate.is_dir():
            return self._resolve_directory(candidate, closure)
        return None

    def _resolve_file(self, candidate: Path) -> Path | None:
        if candidate.is_file():
            return candidate
        for ext in self._extensions:
            attempt = candidate.with_name(candidate.name + ext)
            if attempt.is_file():
                return attempt
        return None

    def _resolve_directory(self, directory: Path, closure: set[str]) -> Path | None:
        manifest = directory / "package.json"
        if manifest.is_file():
            main = _read_main(manifest)
            if main:
                target = directory / main
                hit = self._resolve_file(target)
                if hit is None and target.is_dir():
                    hit = self._resolve_index(target)
                if hit is not None:
                    return hit
        return self._resolve_index(directory)

    def _resolve_index(self, directory: Path) -> Path | None:
        for ext in self._extensions:
            attempt = directory / f"index{ext}"
            if attempt.is_file():
                return attempt
        return None

    @staticmethod
    def _add_manifest(manifest: Path, base: Path, closure: set[str]) -> None:
        ImportScanTracer._record_links(Path(os.path.abspath(manifest)), base, closure)
        rel = _relative_to(manifest.resolve(), base)
        if rel is not None:
            closure.add(rel)


def _read_main(manifest: Path) -> str | None:
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    main = data.get("main") if isinstance(data, dict) else None
    return main if isinstance(main, str) and main else None


def _relative_to(path: Path, base: Path) -> str | None:
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# @vercel/nft via node
# ---------------------------------------------------------------------------

_NFT_SCRIPT = textwrap.dedent("""\
    const { nodeFileTrace } = require(require.resolve('@vercel/nft', { paths: [process.cwd()] }))
    let raw = ''
    process.stdin.on('data', chunk => { raw += chunk })
    process.stdin.on('end', async () => {
      const input = JSON.parse(raw)
      const { fileList } = await nodeFileTrace(input.entries, {
        base: input.base,
        processCwd: input.processCwd,
      })
      process.stdout.write(JSON.stringify([...fileList]))
    })
""")


class NodeFileTracer:
    """Delegate tracing to ``@vercel/nft`` through a ``node`` subprocess.

    ``@vercel/nft`` must be resolvable from the package directory. The call
    blocks until node exits; no timeout is applied.
    """

    def __init__(self, node: str = "node") -> None:
        self._node = node

    def trace(self, entries: Iterable[str], base: Path, process_cwd: Path) -> set[str]:
        cwd = Path(process_cwd)
        payload = {
            "entries": [str(cwd / e) for e in entries],
            "base": str(base),
            "processCwd": str(cwd),
        }
        cmd = [self._node, "-e", _NFT_SCRIPT]
        logger.debug("closure.nft_started", entries=len(payload["entries"]), cwd=str(cwd))
        try:
            result = subprocess.run(
                cmd,
                input=json.dumps(payload),
                capture_output=True,
                text=True,
                cwd=str(cwd),
            )
        except OSError as exc:
            raise CollaboratorError(
                f"Cannot run {self._node}: {exc}", command=[self._node], cause=exc
            ) from exc

        if result.returncode != 0:
            raise CollaboratorError(
                f"@vercel/nft failed (exit {result.returncode}): {result.stderr.strip()}",
                command=[self._node, "-e", "<nft>"],
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        try:
            files = json.loads(result.stdout)
        except ValueError as exc:
            raise CollaboratorError(
                "@vercel/nft produced unreadable output",
                command=[self._node, "-e", "<nft>"],
                stdout=result.stdout,
                cause=exc,
            ) from exc
        return {Path(f).as_posix() for f in files}


def get_tracer(name: str) -> ClosureTracer:
    """Build the tracer selected by ``IsolateConfig.tracer``."""
    if name == "scan":
        return ImportScanTracer()
    if name == "nft":
        return NodeFileTracer()
    raise ConfigurationError(f"Unknown tracer: {name!r} (expected 'scan' or 'nft')")
