# config.py
# Build configuration: defaults below, merged with a local (not version
# controlled) JSON override file. Keys may be snake_case or the camelCase
# names used by older gulp.local.json files.
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .errors import ConfigError

DEFAULT_LOCAL_CONFIG = "assetpipe.local.json"
CONFIG_ENV_VAR = "ASSETPIPE_CONFIG"
SECRET_ENV_VARS = {
    "s3_access_key": "ASSETPIPE_S3_ACCESS_KEY",
    "s3_secret_key": "ASSETPIPE_S3_SECRET_KEY",
}


DEFAULT_VENDOR_MIN_MAP = {
    "bower_components/angular/angular.js": "bower_components/angular/angular.min.js",
    "bower_components/jquery/dist/jquery.js": "bower_components/jquery/dist/jquery.min.js",
    "bower_components/plupload/js/plupload.dev.js": "bower_components/plupload/js/plupload.min.js",
    "bower_components/plupload/js/moxie.js": "bower_components/plupload/js/moxie.min.js",
    "bower_components/highcharts-release/highcharts.src.js": "bower_components/highcharts-release/highcharts.js",
    "bower_components/highcharts-release/highcharts-more.src.js": "bower_components/highcharts-release/highcharts-more.js",
    "bower_components/highcharts-release/highcharts-3d.src.js": "bower_components/highcharts-release/highcharts-3d.js",
    "bower_components/highcharts-ng/dist/highcharts-ng.js": "bower_components/highcharts-ng/dist/highcharts-ng.min.js",
    "bower_components/angular-ui-ace/ui-ace.js": "bower_components/angular-ui-ace/ui-ace.min.js",
    "bower_components/ng-sortable/dist/ng-sortable.js": "bower_components/ng-sortable/dist/ng-sortable.min.js",
}


class Config(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    # Paths
    src_dir: str = "./app"
    dist_dir: str = "./dist"
    tmp_dir: str = "./.tmp"
    generated_dir: str = "./generated"
    # copies of the built index for the PHP API
    api_index_dir: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("api_index_dir", "apiIndexDir", "apiDashboardIndexPath"),
    )

    # Dev server / live reload
    server_host: str = "0.0.0.0"
    live_reload_port: Optional[int] = 35729  # None disables live reload
    live_reload_client_port: int = 35729
    web_socket_protocol: str = "ws"
    public_path: str = "/dashboard"
    local_host_base: str = "//dashboard.managewp.dev/"

    # HTML
    use_source_maps: bool = True
    google_analytics_dev_id: str = ""
    source_map_url_prefix: str = Field(
        default="https://orion.managewp.com",
        validation_alias=AliasChoices("source_map_url_prefix", "sourceMapUrlPrefix", "sourceMapURLPrefix"),
    )
    override: Dict[str, Any] = Field(default_factory=dict)
    snippets: Dict[str, str] = Field(default_factory=dict)  # placeholder -> file under src_dir
    vendor_min_map: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_VENDOR_MIN_MAP))

    # Styles
    style_entries: List[str] = Field(
        default_factory=lambda: [
            "styles/bootstrap.scss",
            "styles/application.scss",
            "styles/signup-onboarding.scss",
        ]
    )
    style_include_paths: List[str] = Field(
        default_factory=lambda: [
            "bower_components",
            "bower_components/bootstrap-sass-official/assets/stylesheets",
        ]
    )
    vendor_css: List[str] = Field(
        default_factory=lambda: [
            "bower_components/angular-ui-select/dist/select.css",
            "bower_components/ng-sortable/dist/ng-sortable.css",
            "bower_components/godaddy-pro-header/build/godaddy-pro-header.css",
        ]
    )

    # Templates
    template_sources: List[str] = Field(default_factory=lambda: ["views/**/*.html", "application/**/*.html"])
    template_module: str = "mwpApp.template"
    template_root: str = "views/"
    template_function: str = "loadTemplateModule"

    # Icons
    icons_stylesheet: str = "styles/fonts/MwpIcons/_icons.scss"

    # Lint
    lint_patterns: List[str] = Field(default_factory=lambda: ["**/*.js", "!bower_components/**"])

    # CDN specific, set in the local override file
    cdn_url: Optional[str] = None
    s3_directory: Optional[str] = None
    s3_bucket: Optional[str] = None
    s3_region: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    source_map_directory: Optional[str] = None

    # Process flags
    npm_script: bool = False

    @property
    def src(self) -> Path:
        return Path(self.src_dir)

    @property
    def dist(self) -> Path:
        return Path(self.dist_dir)

    @property
    def tmp(self) -> Path:
        return Path(self.tmp_dir)

    @property
    def generated(self) -> Path:
        return Path(self.generated_dir)

    @property
    def live_reload_enabled(self) -> bool:
        return bool(self.live_reload_port)


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object, got {type(data).__name__}")
    return data


def load_config(path: str | Path | None = None, **overrides: Any) -> Config:
    """
    Build the effective configuration.

    Order (later wins): defaults, local override file, keyword overrides.
    The override file path comes from `path`, then $ASSETPIPE_CONFIG, then
    ./assetpipe.local.json. A missing file means "defaults only".
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_LOCAL_CONFIG
    local_path = Path(path)

    data: Dict[str, Any] = {}
    if local_path.is_file():
        data.update(_read_json(local_path))

    # credentials may stay out of the file entirely
    for field_name, env_name in SECRET_ENV_VARS.items():
        if os.environ.get(env_name):
            data.pop(to_camel(field_name), None)
            data[field_name] = os.environ[env_name]

    try:
        config = Config.model_validate(data)
        if overrides:
            config = config.model_copy(update=overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {local_path}:\n{e}") from e
    return config


def apply_flags(
    config: Config,
    *,
    no_livereload: bool = False,
    no_source_maps: bool = False,
    no_splash: bool = False,
    npm_script: bool = False,
) -> Config:
    """Fold the recognized process flags into a config copy."""
    update: Dict[str, Any] = {}
    if no_livereload:
        update["live_reload_port"] = None
    if no_source_maps:
        update["use_source_maps"] = False
    if no_splash:
        update["override"] = {**config.override, "hideSplashScreen": True}
    if npm_script:
        update["npm_script"] = True
    return config.model_copy(update=update) if update else config


def app_config_data(config: Config) -> str:
    """
    JSON injected into the index document: <src>/config.json, then
    <src>/config.local.json, then config.override. Unreadable files are skipped.
    """
    merged: Dict[str, Any] = {}
    for candidate in (config.src / "config.json", config.src / "config.local.json"):
        try:
            merged.update(json.loads(candidate.read_text(encoding="utf-8")))
        except (OSError, ValueError, TypeError):
            continue
    merged.update(config.override)
    return json.dumps(merged, separators=(",", ":"))
