# transforms/images.py
from __future__ import annotations

import io
from pathlib import Path
from typing import Dict

from PIL import Image, UnidentifiedImageError

from .. import globs
from ..context import BuildContext
from .rev import MANIFEST_NAME, rev_path, write_manifest

IMAGE_PATTERNS = ["image*/**/*"]

# Pillow format -> save options
_SAVE_OPTIONS = {
    "PNG": {"optimize": True},
    "JPEG": {"optimize": True, "quality": 85, "progressive": True},
    "GIF": {"optimize": True},
}


def optimize_image(data: bytes) -> bytes:
    """
    Losslessly re-encode PNG/GIF (and JPEG at quality 85) with Pillow.

    Anything Pillow cannot read, or cannot shrink, comes back unchanged.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            options = _SAVE_OPTIONS.get(fmt or "")
            if options is None:
                return data
            out = io.BytesIO()
            img.save(out, format=fmt, **options)
    except (UnidentifiedImageError, OSError):
        return data
    optimized = out.getvalue()
    return optimized if len(optimized) < len(data) else data


def optimize_images(ctx: BuildContext) -> Dict[str, str]:
    """
    Optimize, fingerprint and write every image under <src>/images into <dist>.

    SVG files are fingerprinted but never re-encoded. The original -> fingerprinted
    mapping is merged into <tmp>/rev-manifest.json and returned.
    """
    config = ctx.config
    manifest: Dict[str, str] = {}

    for path in globs.expand(config.src, IMAGE_PATTERNS):
        rel = path.relative_to(config.src).as_posix()
        data = path.read_bytes()
        if path.suffix.lower() != ".svg":
            data = optimize_image(data)
        revved = rev_path(rel, data)
        target = config.dist / revved
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        manifest[rel] = revved

    write_manifest(Path(config.tmp) / MANIFEST_NAME, manifest)
    ctx.console.print_debug(f"optimized {len(manifest)} image(s)")
    return manifest
