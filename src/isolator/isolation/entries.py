"""Entry set resolution: expand the entry glob against the package dir.

Supported syntax: ``**`` (any number of directories), ``*``, ``?``,
``[abc]`` / ``[!abc]`` and brace alternation ``{js,json}`` (nestable).
Dot-files are never matched and ignored directory names (``node_modules``
by default) are pruned whatever the pattern says.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from pathlib import Path

from isolator.core.logging import get_logger
from isolator.isolation.config import DEFAULT_IGNORE

logger = get_logger(__name__)


def expand_braces(pattern: str) -> list[str]:
    """Expand the first top-level ``{a,b}`` group, recursively.

    >>> expand_braces("**/*.{js,json}")
    ['**/*.js', '**/*.json']

    Unbalanced braces and groups without a comma are kept literally.
    """
    depth = 0
    start = None
    commas: list[int] = []
    for i, ch in enumerate(pattern):
        if ch == "{":
            if depth == 0:
                start = i
                commas = []
            depth += 1
        elif ch == "," and depth == 1:
            commas.append(i)
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                if not commas:
                    # "{x}" is literal; keep looking after it
                    head = pattern[: i + 1]
                    return [head + rest for rest in expand_braces(pattern[i + 1 :])]
                prefix, suffix = pattern[:start], pattern[i + 1 :]
                bounds = [start, *commas, i]
                options = [pattern[a + 1 : b] for a, b in zip(bounds, bounds[1:])]
                expanded: list[str] = []
                for option in options:
                    for candidate in expand_braces(prefix + option + suffix):
                        if candidate not in expanded:
                            expanded.append(candidate)
                return expanded
    return [pattern]


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a brace-free glob into an anchored regex over POSIX paths."""
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                at_segment_start = i == 0 or pattern[i - 1] == "/"
                if at_segment_start and pattern.startswith("**/", i):
                    out.append("(?:[^/]+/)*")
                    i += 3
                    continue
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            j = pattern.find("]", i + 2)
            if j == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1 : j]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = j
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out))


def resolve(
    pattern: str,
    cwd: Path,
    ignore: Iterable[str] = DEFAULT_IGNORE,
) -> list[str]:
    """Return the sorted entry files under *cwd* matching *pattern*.

    Paths are POSIX-style and relative to *cwd*. An empty list is a valid
    result.
    """
    ignored = set(ignore)
    matchers = [glob_to_regex(p[2:] if p.startswith("./") else p) for p in expand_braces(pattern)]
    root = Path(cwd)

    matches: set[str] = set()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in ignored and not d.startswith("."))
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        for filename in filenames:
            if filename.startswith("."):
                continue
            rel = filename if rel_dir == "." else f"{rel_dir}/{filename}"
            if any(m.fullmatch(rel) for m in matchers):
                matches.add(rel)

    entries = sorted(matches)
    logger.debug("entries.resolved", cwd=str(root), pattern=pattern, count=len(entries))
    return entries
