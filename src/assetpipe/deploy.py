# deploy.py
"""
CDN deployment stage.

A deployment is identified by one version (seconds since the epoch) chosen
once per run. Every asset reference in the built index and stylesheets is
rewritten to

    <cdn_url>/<version>/<asset path>

and every file under the dist directory is uploaded to

    <s3_directory>/<version>/<path>                 (assets)
    <source_map_directory>/<path under source-maps> (source maps, unversioned)

Nothing here touches the network or the filesystem before
`assert_cdn_config` has passed.
"""

from __future__ import annotations

import calendar
import re
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import Config
from .context import BuildContext
from .errors import ConfigError, UploadError
from .transforms.files import write_text
from .transforms.html import API_PROD_INDEX, rewrite_asset_roots

REQUIRED_CDN_FIELDS = (
    "cdn_url",
    "s3_bucket",
    "s3_region",
    "s3_access_key",
    "s3_secret_key",
    "s3_directory",
    "source_map_directory",
)

CACHE_CONTROL = "public,max-age=2592000"
MAX_ATTEMPTS = 10
UPLOAD_WORKERS = 16
VERSION_KEY = "deployment_version"
CLIENT_KEY = "s3_client"  # optional pre-built client in ctx.state

CONTENT_TYPES = {
    "css": "text/css",
    "js": "application/javascript",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "webp": "image/webp",
    "html": "text/html",
    "php": "text/html",
    "json": "application/json",
    "map": "application/json",
    "txt": "text/plain",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "eot": "application/vnd.ms-fontobject",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

_SOURCE_MAP_KEY = re.compile(r"^source-maps/.*\.map$")
_CSS_ROOT_URL = re.compile(r"url\(/(styles|images|assets)")


# ---------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------

def assert_cdn_config(config: Config) -> Config:
    """
    Validate the CDN settings. Returns a copy with the trailing '/' stripped
    from cdn_url.

    Raises:
      ConfigError naming every missing field.
    """
    missing = [name for name in REQUIRED_CDN_FIELDS if not getattr(config, name)]
    if missing:
        raise ConfigError(
            "CDN deployment is not configured. Missing: "
            + ", ".join(missing)
            + ". Set them in your local config file."
        )
    return config.model_copy(update={"cdn_url": config.cdn_url.rstrip("/")})


def deployment_version(now: Optional[float] = None) -> int:
    return int(time.time() if now is None else now)


def cdn_base(cdn_url: str, version: int) -> str:
    return f"{cdn_url.rstrip('/')}/{version}/"


def rewrite_html_for_cdn(text: str, base: str) -> str:
    return rewrite_asset_roots(
        text,
        base,
        src_dirs=("scripts", "images", "application", "assets"),
        href_dirs=("styles", "images", "assets"),
        content_dirs=("images", "assets"),
    )


def rewrite_css_for_cdn(text: str, s3_directory: str, version: int) -> str:
    prefix = f"url(/{s3_directory.strip('/')}/{version}/"
    return _CSS_ROOT_URL.sub(lambda m: prefix + m.group(1), text)


def s3_key_for(relpath: str, version: int, config: Config) -> str:
    relpath = PurePosixPath(relpath).as_posix()
    if _SOURCE_MAP_KEY.match(relpath):
        return f"{config.source_map_directory}/{relpath[len('source-maps/'):]}"
    return f"{config.s3_directory}/{version}/{relpath}"


def content_type_for(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def month_from(moment: datetime) -> datetime:
    """Same day next calendar month, clamped to that month's last day."""
    year, month = (moment.year + 1, 1) if moment.month == 12 else (moment.year, moment.month + 1)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


# ---------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------

def s3_client(config: Config) -> Any:
    return boto3.client(
        "s3",
        region_name=config.s3_region,
        aws_access_key_id=config.s3_access_key,
        aws_secret_access_key=config.s3_secret_key,
        config=BotoConfig(retries={"max_attempts": MAX_ATTEMPTS, "mode": "standard"}),
    )


def _put(client: Any, bucket: str, key: str, path: Path, expires: datetime) -> str:
    try:
        with path.open("rb") as body:
            client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=content_type_for(path.name),
                CacheControl=CACHE_CONTROL,
                Expires=expires,
            )
    except (BotoCoreError, ClientError, OSError) as e:
        raise UploadError(key=key, message=str(e)) from e
    return key


def upload_tree(
    dist_dir: str | Path,
    version: int,
    config: Config,
    client: Any = None,
    *,
    workers: int = UPLOAD_WORKERS,
) -> List[str]:
    """
    Upload every file under `dist_dir`. Returns the uploaded keys once all of
    them completed.

    Raises:
      UploadError for the first failed object; uploads not yet started are cancelled.
    """
    root = Path(dist_dir)
    files = sorted(p for p in root.rglob("*") if p.is_file())
    if not files:
        return []

    client = client or s3_client(config)
    expires = month_from(datetime.now(timezone.utc))
    uploaded: List[str] = []

    with ThreadPoolExecutor(max_workers=min(workers, len(files)), thread_name_prefix="upload") as pool:
        futures = [
            pool.submit(
                _put, client, config.s3_bucket, s3_key_for(p.relative_to(root).as_posix(), version, config), p, expires
            )
            for p in files
        ]
        try:
            for fut in as_completed(futures):
                uploaded.append(fut.result())
        except UploadError:
            for fut in futures:
                fut.cancel()
            raise

    return uploaded


# ---------------------------------------------------------------------
# Pipeline transforms
# ---------------------------------------------------------------------

def check_cdn_config(ctx: BuildContext) -> None:
    ctx.config = assert_cdn_config(ctx.config)


def stamp_version(ctx: BuildContext) -> int:
    version = deployment_version()
    ctx.state[VERSION_KEY] = version
    ctx.console.print_info(f"Deployment version {version}")
    return version


def _version(ctx: BuildContext) -> int:
    if VERSION_KEY not in ctx.state:
        return stamp_version(ctx)
    return ctx.state[VERSION_KEY]


def switch_to_cdn(ctx: BuildContext) -> Dict[str, int]:
    """Rewrite the built index (and its API copy) and every dist stylesheet to the CDN."""
    config = ctx.config
    version = _version(ctx)
    base = cdn_base(config.cdn_url, version)

    indexes = [config.dist / "index.html"]
    if config.api_index_dir:
        indexes.append(Path(config.api_index_dir) / API_PROD_INDEX)
    rewritten = {"html": 0, "css": 0}

    for index in indexes:
        if index.is_file():
            write_text(index, rewrite_html_for_cdn(index.read_text(encoding="utf-8"), base))
            rewritten["html"] += 1

    for css in config.dist.rglob("*.css"):
        write_text(css, rewrite_css_for_cdn(css.read_text(encoding="utf-8"), config.s3_directory, version))
        rewritten["css"] += 1

    ctx.console.print_debug(f"cdn rewrite: {rewritten}")
    return rewritten


def upload(ctx: BuildContext) -> List[str]:
    keys = upload_tree(ctx.config.dist, _version(ctx), ctx.config, client=ctx.state.get(CLIENT_KEY))
    ctx.console.print_info(f"Uploaded {len(keys)} file(s) to s3://{ctx.config.s3_bucket}")
    return keys
