# transforms/icons.py
# Icon font codegen. The exported stylesheet is read from the source tree and
# the rewritten copy plus the class list go to <generated>/icons/; the source
# file itself is never modified.
from __future__ import annotations

import json
import re
from pathlib import PurePosixPath
from typing import Dict, List

from ..context import BuildContext
from .files import write_text

ICONS_DIR = "icons"
ICON_IMPORTS = '@import "core";\n@import "spinning";\n\n'

_RELATIVE_URL = re.compile(r"url\('(?!/|data:|https?:)")
_ICON_CLASS = re.compile(r"\.fa-([^:]+)")
_FIRST_RULE = re.compile(r"\.fa")


def rewrite_icon_stylesheet(scss: str, font_dir: str) -> str:
    root = "/" + font_dir.strip("/") + "/"
    scss = _RELATIVE_URL.sub(f"url('{root}", scss)
    if ICON_IMPORTS not in scss:
        scss = _FIRST_RULE.sub(ICON_IMPORTS + ".fa", scss, count=1)
    return scss


def icon_classes(scss: str) -> List[Dict[str, str]]:
    """[{"class": "glass"}, ...] in stylesheet order, duplicates dropped."""
    seen: Dict[str, None] = {}
    for name in _ICON_CLASS.findall(scss):
        seen.setdefault(name.strip(), None)
    return [{"class": name} for name in seen]


def generate_icons(ctx: BuildContext) -> List[Dict[str, str]]:
    config = ctx.config
    source = config.src / config.icons_stylesheet
    scss = source.read_text(encoding="utf-8")

    font_dir = str(PurePosixPath(config.icons_stylesheet).parent)
    icons = icon_classes(scss)
    out_dir = config.generated / ICONS_DIR

    write_text(out_dir / source.name, rewrite_icon_stylesheet(scss, font_dir))
    write_text(out_dir / "icons.json", json.dumps(icons, indent=2) + "\n")
    ctx.console.print_info(f"Generated {len(icons)} icon class(es) into {out_dir}")
    return icons
