import pytest
import sass

from assetpipe.transforms.styles import compile_styles, prefix_root_urls


def test_prefix_root_urls():
    css = 'a{background:url("/images/x.png")} b{background:url(/styles/y.png)} c{background:url(/fonts/z)}'

    out = prefix_root_urls(css, "/dashboard")

    assert 'url("/dashboard/images/x.png")' in out
    assert "url(/dashboard/styles/y.png)" in out
    assert "url(/fonts/z)" in out
    assert prefix_root_urls(css, "") == css


def test_dev_styles_are_expanded_with_embedded_maps(make_ctx):
    ctx = make_ctx()

    [path] = compile_styles(ctx, dev=True)

    assert path == ctx.config.dist / "styles" / "application.css"
    css = path.read_text()
    assert "color: #fff;" in css
    assert 'url("/dashboard/images/logo.png")' in css
    assert "sourceMappingURL=data:" in css


def test_dev_styles_without_source_maps(make_ctx):
    [path] = compile_styles(make_ctx(use_source_maps=False), dev=True)

    assert "sourceMappingURL" not in path.read_text()


def test_prod_styles_are_minified_into_tmp(make_ctx):
    ctx = make_ctx()

    [path] = compile_styles(ctx, dev=False)

    assert path == ctx.config.tmp / "styles" / "application.css"
    css = path.read_text()
    assert "\n" not in css.strip()
    assert 'url("/images/logo.png")' in css


def test_compile_errors_propagate(make_ctx):
    ctx = make_ctx()
    (ctx.config.src / "styles" / "broken.scss").write_text(".a { color: $undefined; }")

    with pytest.raises(sass.CompileError):
        compile_styles(ctx, ["styles/broken.scss"], dev=True)
