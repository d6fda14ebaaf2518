# transforms/styles.py
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Sequence

import rcssmin
import sass

from ..context import BuildContext
from .files import write_text

_ROOT_URL = re.compile(r'url\((")?/(styles|images)')


def prefix_root_urls(css: str, public_path: str) -> str:
    """url("/styles/...") -> url("/dashboard/styles/...") for the dev server layout."""
    prefix = public_path.rstrip("/")
    if not prefix:
        return css
    return _ROOT_URL.sub(lambda m: f"url({m.group(1) or ''}{prefix}/{m.group(2)}", css)


def compile_scss(entry: Path, include_paths: Sequence[Path], *, source_map: bool = False) -> str:
    """
    Compile one stylesheet with libsass.

    Raises:
      sass.CompileError with libsass' message (file, line, column).
    """
    kwargs = dict(
        filename=str(entry),
        include_paths=[str(p) for p in include_paths],
        output_style="expanded",
    )
    if source_map:
        css, _map = sass.compile(
            source_map_filename=str(entry.with_suffix(".css.map")),
            source_map_embed=True,
            source_map_contents=True,
            **kwargs,
        )
        return css
    return sass.compile(**kwargs)


def compile_styles(
    ctx: BuildContext,
    entries: Sequence[str] | None = None,
    *,
    dev: bool,
) -> List[Path]:
    """
    dev:  <dist>/styles/<name>.css, optional embedded source maps, root urls prefixed
    prod: <tmp>/styles/<name>.css, minified
    """
    config = ctx.config
    entries = list(entries if entries is not None else config.style_entries)
    include_paths = [config.src / p for p in config.style_include_paths]
    dest = (config.dist if dev else config.tmp) / "styles"
    written: List[Path] = []

    for rel in entries:
        entry = config.src / rel
        css = compile_scss(entry, [entry.parent, *include_paths], source_map=dev and config.use_source_maps)
        if dev:
            css = prefix_root_urls(css, config.public_path)
        else:
            css = rcssmin.cssmin(css)
        written.append(write_text(dest / f"{entry.stem}.css", css))

    return written
