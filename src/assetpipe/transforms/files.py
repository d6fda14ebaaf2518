# transforms/files.py
from __future__ import annotations

import shutil
from pathlib import Path
from typing import List, Sequence

from .. import globs
from ..context import BuildContext


def clean(ctx: BuildContext, path: str | Path) -> None:
    """Remove a directory tree (or file). A missing path is not an error."""
    p = Path(path)
    if p.is_dir():
        shutil.rmtree(p)
    elif p.exists():
        p.unlink()
    ctx.console.print_debug(f"cleaned {p}")


def copy(
    ctx: BuildContext,
    patterns: Sequence[str],
    dest: str | Path,
    *,
    base: str | Path,
    flatten: bool = False,
) -> List[Path]:
    """
    Copy files matching `patterns` (relative to `base`) into `dest`.

    Paths relative to `base` are kept unless `flatten` is set, in which case
    only file names are kept (gulp.src without a base option).
    """
    base_p = Path(base)
    dest_p = Path(dest)
    written: List[Path] = []

    for src in globs.expand(base_p, patterns):
        rel = Path(src.name) if flatten else src.relative_to(base_p)
        target = dest_p / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, target)
        written.append(target)

    ctx.console.print_debug(f"copied {len(written)} file(s) into {dest_p}")
    return written


def write_text(path: str | Path, text: str) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p
