import json
import re

from assetpipe.transforms.html import (
    build_html_dev,
    build_html_prod,
    expand_html_globs,
    is_glob,
    prefix_assets,
    rewrite_host_base,
    strip_env_blocks,
    swap_vendor_min,
    useref,
)
from assetpipe.transforms.rev import MANIFEST_NAME, write_manifest


def _prepare_prod_inputs(ctx):
    tmp = ctx.config.tmp
    write_manifest(tmp / MANIFEST_NAME, {"images/logo.png": "images/logo-abc1234567.png"})
    (tmp / "scripts").mkdir(parents=True, exist_ok=True)
    (tmp / "scripts" / "template.js").write_text("var templates = 3;\n")


# ---------------------------------------------------------------------
# Text rewrites
# ---------------------------------------------------------------------

def test_strip_env_blocks_removes_the_other_environment():
    html = "a<!-- env:prod -->P<!-- envend -->b<!--env: dev-->D<!--envdevend-->c"

    assert strip_env_blocks(html, "dev") == "ab<!--env: dev-->D<!--envdevend-->c"
    assert strip_env_blocks(html, "prod") == "a<!-- env:prod -->P<!-- envend -->bc"


def test_prefix_assets_only_touches_quoted_asset_roots():
    html = '<script src="scripts/a.js"></script><link href="STYLES/b.css"><a href="help/x">'

    out = prefix_assets(html, "/dashboard")

    assert '"/dashboard/scripts/a.js"' in out
    assert '"/dashboard/STYLES/b.css"' in out
    assert '"help/x"' in out


def test_swap_vendor_min():
    html = '<script src="bower_components/angular/angular.js"></script>'

    out = swap_vendor_min(html, {"bower_components/angular/angular.js": "bower_components/angular/angular.min.js"})

    assert out == '<script src="bower_components/angular/angular.min.js"></script>'


def test_expand_html_globs_keeps_indentation(project):
    html = '  <script src="scripts/*.js"></script>\n  <link rel="stylesheet" href="missing/*.css">\n'

    out = expand_html_globs(html, project)

    assert out == (
        '  <script src="scripts/app.js"></script>\n'
        '  <script src="scripts/util.js"></script>\n'
        "\n"
    )


def test_expand_html_globs_leaves_urls_and_query_strings(project):
    html = (
        '<link rel="stylesheet" href="https://fonts.googleapis.com/css?family=Roboto">\n'
        '<script src="//cdn.example.com/lib/*.js"></script>\n'
        '<script src="scripts/app.js?v=3"></script>\n'
    )

    assert expand_html_globs(html, project) == html


def test_is_glob():
    assert is_glob("scripts/**/*.js")
    assert is_glob("styles/{a,b}.css")
    assert not is_glob("scripts/app.js?v=3")
    assert not is_glob("https://fonts.googleapis.com/css?family=Roboto")
    assert not is_glob("//cdn.example.com/*.js")
    assert not is_glob("")


def test_useref_collects_bundles(project):
    html = (
        "<head><!-- build:css styles/vendor.css -->"
        '<link rel="stylesheet" href="styles/select.css">'
        "<!-- endbuild --></head>"
        "<!-- build:remove --><script src=\"dev.js\"></script><!-- endbuild -->"
    )

    out, bundles = useref(html, project)

    assert out == '<head><link rel="stylesheet" href="styles/vendor.css"></head>'
    assert [(b.kind, b.target) for b in bundles] == [("css", "styles/vendor.css")]
    assert bundles[0].sources == [project / "styles" / "select.css"]


# ---------------------------------------------------------------------
# Development index
# ---------------------------------------------------------------------

def test_build_html_dev(make_ctx):
    ctx = make_ctx()

    path = build_html_dev(ctx)

    assert path == ctx.config.dist / "index.php"
    html = path.read_text()
    assert html.index("ws://localhost:35729") < html.index("</body>")
    assert '<div id="profiler"></div>' in html
    assert '<script src="/dashboard/scripts/app.js"></script>' in html
    assert '<script src="/dashboard/scripts/util.js"></script>' in html
    assert '"/dashboard/scripts/template.js"' in html
    assert 'href="/dashboard/styles/application.css"' in html
    assert 'var config = {"api":"/api","debug":true};' in html
    assert "prod-only" not in html
    assert "dev-only" in html

    api_copy = ctx.config.api_index_dir + "/dashboardIndex_dev.php"
    assert open(api_copy).read() == html


def test_build_html_dev_without_live_reload(make_ctx):
    html = build_html_dev(make_ctx(live_reload_port=None)).read_text()

    assert "WebSocket" not in html


def test_build_html_dev_keeps_external_and_versioned_tags(make_ctx):
    ctx = make_ctx(live_reload_port=None)
    (ctx.config.src / "index.php").write_text(
        "<html><head>\n"
        '<link href="https://fonts.googleapis.com/css?family=Roboto" rel="stylesheet">\n'
        '<script src="scripts/app.js?v=3"></script>\n'
        "</head><body></body></html>\n"
    )

    html = build_html_dev(ctx).read_text()

    assert '<link href="https://fonts.googleapis.com/css?family=Roboto" rel="stylesheet">' in html
    assert '<script src="/dashboard/scripts/app.js?v=3"></script>' in html


# ---------------------------------------------------------------------
# Production index
# ---------------------------------------------------------------------

def test_build_html_prod(make_ctx):
    ctx = make_ctx()
    _prepare_prod_inputs(ctx)

    path = build_html_prod(ctx)

    assert path == ctx.config.dist / "index.html"
    html = path.read_text()
    assert 'src="images/logo-abc1234567.png"' in html
    assert "dev-only" not in html
    assert "prod-only" in html
    assert "<script src=" not in html

    script = re.search(r'<script async src="(scripts/app-[0-9a-f]{10}\.js)"></script>', html)
    assert script is not None
    bundle = (ctx.config.dist / script.group(1)).read_text()
    assert "util" in bundle
    assert "templates=3" in bundle
    assert "sourceMappingURL=https://orion.managewp.com/source-maps/" in bundle

    css = re.search(r'href="(styles/vendor-[0-9a-f]{10}\.css)"', html)
    assert css is not None
    assert (ctx.config.dist / css.group(1)).read_text().startswith(".select{display:block}")

    source_map = json.loads((ctx.config.dist / "source-maps" / (script.group(1) + ".map")).read_text())
    assert source_map["version"] == 3
    assert len(source_map["sourcesContent"]) == 3
    assert source_map["mappings"] == ""

    assert (ctx.config.dist.parent / "api" / "dashboardIndex_prod.php").read_text() == html


def test_build_html_prod_without_source_maps(make_ctx):
    ctx = make_ctx(use_source_maps=False)
    _prepare_prod_inputs(ctx)

    build_html_prod(ctx)

    assert not (ctx.config.dist / "source-maps").exists()


def test_rewrite_host_base(make_ctx):
    ctx = make_ctx()
    index = ctx.config.dist / "index.html"
    index.parent.mkdir(parents=True)
    index.write_text(
        '<script async src="scripts/a.js"></script><link href="styles/b.css">'
        '<meta content="images/c.png"><img src="assets/d.png">'
    )

    rewrite_host_base(ctx)

    html = index.read_text()
    assert ' src="//dashboard.managewp.dev/scripts/a.js"' in html
    assert ' href="//dashboard.managewp.dev/styles/b.css"' in html
    assert ' content="//dashboard.managewp.dev/images/c.png"' in html
    assert ' src="assets/d.png"' in html
