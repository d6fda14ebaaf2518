# globs.py
# Path pattern matching shared by copy transforms, the watcher and lint.
#
#   "**/"   any number of directories (including none)
#   "**"    anything, across directories
#   "*"     anything within one path segment
#   "?"     one character within a segment
#   "{a,b}" alternation
#   "!pat"  exclusion (only meaningful in a pattern list)
from __future__ import annotations

import functools
import re
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple


@functools.lru_cache(maxsize=512)
def compile_glob(pattern: str) -> "re.Pattern[str]":
    out: List[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif c == "*":
            out.append("[^/]*")
            i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "{":
            end = pattern.find("}", i)
            if end == -1:
                out.append(re.escape(c))
                i += 1
                continue
            options = pattern[i + 1:end].split(",")
            out.append("(?:" + "|".join(re.escape(o) for o in options) + ")")
            i = end + 1
        else:
            out.append(re.escape(c))
            i += 1
    return re.compile("".join(out) + r"\Z")


def _normalize(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def split_patterns(patterns: Sequence[str]) -> Tuple[List[str], List[str]]:
    include = [_normalize(p) for p in patterns if not p.startswith("!")]
    exclude = [_normalize(p[1:]) for p in patterns if p.startswith("!")]
    return include, exclude


def matches(path: str, patterns: Sequence[str]) -> bool:
    """True if `path` (relative, posix) matches any include and no exclude pattern."""
    path = _normalize(path)
    include, exclude = split_patterns(patterns)
    if not any(compile_glob(p).match(path) for p in include):
        return False
    return not any(compile_glob(p).match(path) for p in exclude)


def glob_base(pattern: str) -> str:
    """Leading directory part of a pattern that contains no magic characters."""
    pattern = _normalize(pattern)
    if not any(ch in pattern for ch in "*?{["):
        return pattern
    parts = pattern.split("/")
    base: List[str] = []
    for part in parts[:-1]:
        if any(ch in part for ch in "*?{["):
            break
        base.append(part)
    return "/".join(base)


def expand(root: str | Path, patterns: Sequence[str]) -> List[Path]:
    """
    Files under `root` matching `patterns`, sorted for deterministic output.
    Only the non-magic base directories of the include patterns are walked.
    """
    root_p = Path(root)
    include, _exclude = split_patterns(patterns)
    seen: set[Path] = set()
    found: List[Path] = []

    for pat in include:
        base = root_p / glob_base(pat)
        if base.is_file():
            candidates: Iterable[Path] = [base]
        elif base.is_dir():
            candidates = (p for p in base.rglob("*") if p.is_file())
        else:
            continue
        for p in candidates:
            rel = p.relative_to(root_p).as_posix()
            if p not in seen and matches(rel, patterns):
                seen.add(p)
                found.append(p)

    return sorted(found)
