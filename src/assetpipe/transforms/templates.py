# transforms/templates.py
"""
Template cache bundle.

Every view partial is pre-registered in Angular's $templateCache so the
application never fetches templates at runtime:

    function loadTemplateModule() { angular.module("mwpApp.template", []).run(["$templateCache", function($templateCache){
    $templateCache.put("views/dashboard/index.html","<div>...</div>");
    }]); }

Keys are <template_root><path relative to the pattern base>.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, List

import rjsmin

from .. import globs
from ..context import BuildContext
from .files import write_text

_COMMENT = re.compile(r"<!--(?!\s*\[if).*?-->", re.DOTALL)
_BETWEEN_TAGS = re.compile(r">\s+<")
_WHITESPACE = re.compile(r"\s+")


def minify_html(html: str) -> str:
    """
    Conservative minifier: drop comments (conditional comments survive),
    collapse whitespace runs to a single space, remove whitespace between tags.
    Attributes are left untouched.
    """
    html = _COMMENT.sub("", html)
    html = _WHITESPACE.sub(" ", html)
    html = _BETWEEN_TAGS.sub("><", html)
    return html.strip()


def collect_templates(ctx: BuildContext, *, minify: bool = False) -> Dict[str, str]:
    """Logical view path -> template markup, sorted by key."""
    config = ctx.config
    templates: Dict[str, str] = {}

    for pattern in config.template_sources:
        base = config.src / globs.glob_base(pattern)
        for path in globs.expand(config.src, [pattern]):
            key = config.template_root + path.relative_to(base).as_posix()
            html = path.read_text(encoding="utf-8")
            templates[key] = minify_html(html) if minify else html

    return dict(sorted(templates.items()))


def render_template_cache(templates: Dict[str, str], *, module: str, function: str) -> str:
    lines: List[str] = [
        f'function {function}() {{ angular.module("{module}", []).run(["$templateCache", function($templateCache){{'
    ]
    for key, html in templates.items():
        lines.append(f"$templateCache.put({json.dumps(key)},{json.dumps(html)});")
    lines.append("}]); }")
    return "\n".join(lines) + "\n"


def build_template_cache(ctx: BuildContext, *, dev: bool) -> Path:
    """
    dev:  <dist>/scripts/template.js, markup as authored
    prod: <tmp>/scripts/template.js, markup minified, script minified
    """
    config = ctx.config
    templates = collect_templates(ctx, minify=not dev)
    js = render_template_cache(templates, module=config.template_module, function=config.template_function)
    if not dev:
        js = rjsmin.jsmin(js)
    dest = (config.dist if dev else config.tmp) / "scripts" / "template.js"
    ctx.console.print_debug(f"{len(templates)} template(s) -> {dest}")
    return write_text(dest, js)
