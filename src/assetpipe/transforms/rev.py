# transforms/rev.py
# Content fingerprinting: "styles/main.css" -> "styles/main-1a2b3c4d5e.css",
# plus the reverse-lookup manifest consumed by later rewrite steps.
from __future__ import annotations

import hashlib
import json
import re
from pathlib import Path, PurePosixPath
from typing import Dict

MANIFEST_NAME = "rev-manifest.json"
HASH_LENGTH = 10


def content_hash(data: bytes, length: int = HASH_LENGTH) -> str:
    return hashlib.md5(data).hexdigest()[:length]


def rev_path(relpath: str, data: bytes) -> str:
    """Fingerprinted name for a posix relative path."""
    p = PurePosixPath(relpath)
    suffix = "".join(p.suffixes) if p.name.endswith(".map") else p.suffix
    stem = p.name[: len(p.name) - len(suffix)] if suffix else p.name
    return str(p.with_name(f"{stem}-{content_hash(data)}{suffix}"))


def write_manifest(path: str | Path, manifest: Dict[str, str]) -> Path:
    """Merge `manifest` into the manifest file at `path` (created if missing)."""
    p = Path(path)
    existing: Dict[str, str] = {}
    if p.is_file():
        existing = json.loads(p.read_text(encoding="utf-8"))
    existing.update(manifest)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(dict(sorted(existing.items())), indent=2), encoding="utf-8")
    return p


def read_manifest(path: str | Path) -> Dict[str, str]:
    p = Path(path)
    if not p.is_file():
        return {}
    return json.loads(p.read_text(encoding="utf-8"))


def rev_replace(text: str, manifest: Dict[str, str]) -> str:
    """
    Substitute every original path in `text` with its fingerprinted path.

    Longest originals go first so "a/b.css" never clobbers "a/b.css.map".
    Matches are bounded so "logo.png" does not match inside "biglogo.png".
    """
    if not manifest:
        return text
    originals = sorted(manifest, key=len, reverse=True)
    pattern = re.compile(
        r"(?<![\w.-])(" + "|".join(re.escape(o) for o in originals) + r")(?![\w-])"
    )
    return pattern.sub(lambda m: manifest[m.group(1)], text)
