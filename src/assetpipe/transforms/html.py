# transforms/html.py
from __future__ import annotations

import json
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import rcssmin
import rjsmin

from .. import globs, livereload
from ..config import Config, app_config_data
from ..context import BuildContext
from .files import write_text
from .rev import MANIFEST_NAME, read_manifest, rev_path, rev_replace

INDEX_SOURCE = "index.php"
CONFIG_PLACEHOLDER = "{<!--/app/config.json-->}"
GA_PLACEHOLDER = "<!-- GA-DEV-ID -->"
API_DEV_INDEX = "dashboardIndex_dev.php"
API_PROD_INDEX = "dashboardIndex_prod.php"
SOURCE_MAP_DIR = "source-maps"

ASSET_DIRS = ("bower_components", "scripts", "styles", "images", "application", "assets")

_ENV_BLOCKS = {
    # environment being built -> block removed from the output
    "dev": re.compile(r"<!--\s*env:\s*prod\s*-->.*?<!--\s*envend\s*-->", re.IGNORECASE | re.DOTALL),
    "prod": re.compile(r"<!--\s*env:\s*dev\s*-->.*?<!--\s*envdevend\s*-->", re.IGNORECASE | re.DOTALL),
}
_TMP_TEMPLATE = re.compile(r'"\.\./\.tmp/scripts/template\.js"', re.IGNORECASE)
_ASSET_TAG = re.compile(
    r'(?P<indent>[ \t]*)(?P<tag><script\b[^>]*\bsrc="(?P<src>[^"]*)"[^>]*>\s*</script>'
    r'|<link\b[^>]*\bhref="(?P<href>[^"]*)"[^>]*>)'
)
_URL_PREFIX = re.compile(r"^(?:[a-z][a-z0-9+.-]*:|//)", re.IGNORECASE)
_GLOB_CHARS = re.compile(r"\*|\{[^}]*\}")
_BUILD_BLOCK = re.compile(
    r"<!--\s*build:(?P<kind>\w+)(?:\((?P<alt>[^)]*)\))?(?:\s+(?P<target>[^\s>]+))?\s*-->"
    r"(?P<body>.*?)<!--\s*endbuild\s*-->",
    re.DOTALL,
)
_BLOCK_REF = re.compile(r'\b(?:src|href)="([^"]+)"')


# ---------------------------------------------------------------------
# Text rewrites
# ---------------------------------------------------------------------

def strip_env_blocks(html: str, env: str) -> str:
    """Remove the blocks reserved for the other environment."""
    return _ENV_BLOCKS[env].sub("", html)


def prefix_assets(html: str, public_path: str) -> str:
    """Quoted asset paths are rooted at public_path: scripts/app.js -> /dashboard/scripts/app.js."""
    prefix = public_path.rstrip("/")
    pattern = re.compile(r'"(' + "|".join(ASSET_DIRS) + r")/", re.IGNORECASE)
    return pattern.sub(lambda m: f'"{prefix}/{m.group(1)}/', html)


def swap_vendor_min(html: str, vendor_min_map: Dict[str, str]) -> str:
    for original, minified in vendor_min_map.items():
        html = re.sub('"' + re.escape(original) + '"', '"' + minified + '"', html, flags=re.IGNORECASE)
    return html


def apply_snippets(html: str, config: Config) -> str:
    """Replace each configured placeholder with the contents of its snippet file."""
    for placeholder, rel in config.snippets.items():
        html = html.replace(placeholder, (config.src / rel).read_text(encoding="utf-8"))
    return html


def is_glob(value: str) -> bool:
    if not value or _URL_PREFIX.match(value):
        return False
    path = re.split(r"[?#]", value, maxsplit=1)[0]
    return bool(_GLOB_CHARS.search(path))


def expand_html_globs(html: str, root: Path) -> str:
    """
    <script src="scripts/**/*.js"></script> becomes one tag per matching file,
    same indentation; a pattern with no match drops the tag. URLs with a
    scheme or a leading // and plain paths with a query string are left alone.
    """

    def expand_tag(m: "re.Match[str]") -> str:
        pattern = m.group("src") or m.group("href") or ""
        tag = m.group("tag")
        if not is_glob(pattern):
            return m.group(0)
        files = globs.expand(root, [pattern])
        return "\n".join(
            m.group("indent") + tag.replace(f'"{pattern}"', f'"{f.relative_to(root).as_posix()}"')
            for f in files
        )

    return _ASSET_TAG.sub(expand_tag, html)


def rewrite_asset_roots(
    html: str,
    base: str,
    *,
    src_dirs: Sequence[str],
    href_dirs: Sequence[str],
    content_dirs: Sequence[str],
) -> str:
    """Root relative asset attributes at `base` (a host or CDN prefix ending in '/')."""
    for attr, dirs in (("src", src_dirs), ("href", href_dirs), ("content", content_dirs)):
        if not dirs:
            continue
        pattern = re.compile(rf'( {attr}=")(' + "|".join(re.escape(d) + "/" for d in dirs) + ")")
        html = pattern.sub(lambda m: m.group(1) + base + m.group(2), html)
    return html


def _copy_to_api(ctx: BuildContext, built: Path, name: str) -> Optional[Path]:
    if not ctx.config.api_index_dir:
        return None
    target = Path(ctx.config.api_index_dir) / name
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(built, target)
    return target


# ---------------------------------------------------------------------
# Development index
# ---------------------------------------------------------------------

def build_html_dev(ctx: BuildContext) -> Path:
    config = ctx.config
    html = (config.src / INDEX_SOURCE).read_text(encoding="utf-8")

    if config.live_reload_enabled:
        html = livereload.inject(
            html, livereload.client_snippet(config.web_socket_protocol, config.live_reload_client_port)
        )

    html = apply_snippets(html, config)
    html = _TMP_TEMPLATE.sub('"scripts/template.js"', html)
    html = html.replace(GA_PLACEHOLDER, config.google_analytics_dev_id)
    html = html.replace(CONFIG_PLACEHOLDER, app_config_data(config))
    html = expand_html_globs(html, config.src)
    html = prefix_assets(html, config.public_path)
    html = strip_env_blocks(html, "dev")

    built = write_text(config.dist / INDEX_SOURCE, html)
    _copy_to_api(ctx, built, API_DEV_INDEX)
    return built


# ---------------------------------------------------------------------
# Production index (useref + rev)
# ---------------------------------------------------------------------

@dataclass
class Bundle:
    kind: str  # "js" | "css"
    target: str  # logical path, e.g. scripts/vendor.js
    sources: List[Path] = field(default_factory=list)
    refs: List[str] = field(default_factory=list)


def _resolve_ref(ref: str, search_paths: Sequence[Path]) -> List[Path]:
    """Files behind one build block reference; a glob reference may yield several."""
    clean = ref.split("?", 1)[0].split("#", 1)[0].lstrip("/")
    for base in search_paths:
        if is_glob(clean):
            found = globs.expand(base, [clean])
            if found:
                return found
            continue
        candidate = base / clean
        if candidate.is_file():
            return [candidate]
    raise FileNotFoundError(
        f"Asset referenced in build block not found: {ref} (searched {[str(p) for p in search_paths]})"
    )


def _block_tag(kind: str, target: str) -> str:
    if kind == "js":
        return f'<script src="{target}"></script>'
    if kind == "css":
        return f'<link rel="stylesheet" href="{target}">'
    raise ValueError(f"Unknown build block type: {kind!r}")


def useref(html: str, root: Path) -> Tuple[str, List[Bundle]]:
    """
    Collapse <!-- build:<kind>(<alt paths>) <target> --> ... <!-- endbuild -->
    blocks into one tag per block and collect the referenced files.

    Referenced files are looked up in the alternate paths first (relative to
    the working directory), then relative to `root`. "remove" blocks vanish.
    """
    bundles: List[Bundle] = []

    def replace_block(m: "re.Match[str]") -> str:
        kind = m.group("kind")
        if kind == "remove":
            return ""
        if not m.group("target"):
            raise ValueError(f"Build block '{kind}' has no target path")
        search: List[Path] = [Path(p.strip()) for p in (m.group("alt") or "").split(",") if p.strip()]
        search.append(root)
        bundle = Bundle(kind=kind, target=m.group("target"))
        for ref in _BLOCK_REF.findall(m.group("body")):
            for source in _resolve_ref(ref, search):
                bundle.sources.append(source)
                bundle.refs.append(source.as_posix())
        bundles.append(bundle)
        return _block_tag(kind, bundle.target)

    return _BUILD_BLOCK.sub(replace_block, html), bundles


def _source_map(target: str, bundle: Bundle) -> str:
    """
    Version 3 map listing the bundle's sources with their full text.

    rjsmin and rcssmin do not track positions, so "mappings" is empty: browsers
    show the unminified sources but cannot map minified lines back.
    """
    return json.dumps(
        {
            "version": 3,
            "file": Path(target).name,
            "sources": bundle.refs,
            "sourcesContent": [p.read_text(encoding="utf-8") for p in bundle.sources],
            "names": [],
            "mappings": "",
        }
    )


def write_bundle(ctx: BuildContext, bundle: Bundle, manifest: Dict[str, str]) -> str:
    """Concatenate, minify and fingerprint one bundle. Returns its fingerprinted path."""
    config = ctx.config
    parts = [p.read_text(encoding="utf-8") for p in bundle.sources]

    if bundle.kind == "js":
        content = rjsmin.jsmin(";\n".join(parts))
    else:
        content = rcssmin.cssmin(rev_replace("\n".join(parts), manifest))

    revved = rev_path(bundle.target, content.encode("utf-8"))

    if config.use_source_maps:
        map_rel = f"{SOURCE_MAP_DIR}/{revved}.map"
        write_text(config.dist / map_rel, _source_map(revved, bundle))
        url = f"{config.source_map_url_prefix.rstrip('/')}/{map_rel}"
        if bundle.kind == "js":
            content += f"\n//# sourceMappingURL={url}\n"
        else:
            content += f"\n/*# sourceMappingURL={url} */\n"

    write_text(config.dist / revved, content)
    return revved


def build_html_prod(ctx: BuildContext) -> Path:
    config = ctx.config
    html = (config.src / INDEX_SOURCE).read_text(encoding="utf-8")

    html = html.replace(CONFIG_PLACEHOLDER, app_config_data(config))
    html = swap_vendor_min(html, config.vendor_min_map)

    manifest = read_manifest(config.tmp / MANIFEST_NAME)
    html = rev_replace(html, manifest)

    html, bundles = useref(html, config.src)
    renamed = {b.target: write_bundle(ctx, b, manifest) for b in bundles}
    html = rev_replace(html, renamed)

    html = html.replace("<script src=", "<script async src=")
    html = strip_env_blocks(html, "prod")

    built = write_text(config.dist / "index.html", html)
    _copy_to_api(ctx, built, API_PROD_INDEX)
    ctx.console.print_debug(f"bundles: {renamed}")
    return built


def rewrite_host_base(ctx: BuildContext) -> Path:
    """Point the production index at the local test host (local production testing only)."""
    config = ctx.config
    index = config.dist / "index.html"
    html = rewrite_asset_roots(
        index.read_text(encoding="utf-8"),
        config.local_host_base,
        src_dirs=("scripts", "images"),
        href_dirs=("styles", "images"),
        content_dirs=("images",),
    )
    write_text(index, html)
    _copy_to_api(ctx, index, API_PROD_INDEX)
    return index
