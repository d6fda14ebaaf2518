"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from assetpipe.channel import Broadcaster
from assetpipe.config import Config
from assetpipe.context import BuildContext
from assetpipe.ui.console import Console, set_console

INDEX_PHP = """<!doctype html>
<html>
<head>
    <link rel="stylesheet" href="styles/application.css">
    <!-- build:css styles/vendor.css -->
    <link rel="stylesheet" href="styles/select.css">
    <!-- endbuild -->
</head>
<body>
    <img src="images/logo.png">
    <!-- mwp-profiler -->
    <!-- env:prod --><div id="prod-only"></div><!-- envend -->
    <!-- env:dev --><div id="dev-only"></div><!-- envdevend -->
    <script>var config = {<!--/app/config.json-->};</script>
    <!-- build:js(app) scripts/app.js -->
    <script src="scripts/*.js"></script>
    <script src="../.tmp/scripts/template.js"></script>
    <!-- endbuild -->
</body>
</html>
"""


@pytest.fixture(autouse=True)
def quiet_console():
    """Fresh global console per test so debug flags never leak between tests."""
    set_console(Console())
    yield


@pytest.fixture
def cli_runner():
    """Provide Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A minimal front-end source tree under tmp_path/app."""
    src = tmp_path / "app"
    files = {
        "index.php": INDEX_PHP,
        "config.json": '{"api": "/api", "debug": false}',
        "config.local.json": '{"debug": true}',
        "profiler.html": "<div id=\"profiler\"></div>",
        "scripts/app.js": "var app = 1;\n",
        "scripts/util.js": "function util() { return 2; }\n",
        "styles/application.scss": "$c: #fff;\n.a { color: $c; background: url(\"/images/logo.png\"); }\n",
        "styles/select.css": ".select { display: block; }\n",
        "views/dashboard/index.html": "<div>\n  <span>Dashboard</span>\n</div>\n",
        "application/widget/widget.html": "<p>widget</p>\n",
        "favicon.ico": "ico",
        "robots.txt": "User-agent: *\n",
    }
    for rel, text in files.items():
        p = src / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
    return src


@pytest.fixture
def config(tmp_path: Path, project: Path) -> Config:
    return Config(
        src_dir=str(project),
        dist_dir=str(tmp_path / "dist"),
        tmp_dir=str(tmp_path / ".tmp"),
        generated_dir=str(tmp_path / "generated"),
        api_index_dir=str(tmp_path / "api"),
        snippets={"<!-- mwp-profiler -->": "profiler.html"},
        style_entries=["styles/application.scss"],
        style_include_paths=[],
        vendor_css=["styles/select.css"],
    )


@pytest.fixture
def make_ctx(config: Config):
    """Build a BuildContext, optionally with config field overrides."""

    def factory(**overrides) -> BuildContext:
        cfg = config.model_copy(update=overrides) if overrides else config
        return BuildContext(config=cfg, console=Console(), broadcaster=Broadcaster())

    return factory
