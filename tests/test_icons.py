import json

from assetpipe.transforms.icons import generate_icons, icon_classes, rewrite_icon_stylesheet

ICONS_SCSS = """@font-face {
  font-family: 'MwpIcons';
  src: url('MwpIcons.woff2') format('woff2');
}
.fa-glass:before { content: "\\f000"; }
.fa-music:before { content: "\\f001"; }
.fa-glass:after { content: ""; }
"""


def test_icon_classes_in_order_without_duplicates():
    assert icon_classes(ICONS_SCSS) == [{"class": "glass"}, {"class": "music"}]


def test_rewrite_icon_stylesheet_is_idempotent():
    once = rewrite_icon_stylesheet(ICONS_SCSS, "styles/fonts/MwpIcons")

    assert "url('/styles/fonts/MwpIcons/MwpIcons.woff2')" in once
    assert '@import "core";\n@import "spinning";\n\n.fa-glass' in once
    assert rewrite_icon_stylesheet(once, "styles/fonts/MwpIcons") == once


def test_generate_icons_writes_generated_files_only(make_ctx):
    ctx = make_ctx()
    source = ctx.config.src / ctx.config.icons_stylesheet
    source.parent.mkdir(parents=True)
    source.write_text(ICONS_SCSS)

    icons = generate_icons(ctx)

    out = ctx.config.generated / "icons"
    assert json.loads((out / "icons.json").read_text()) == icons == [{"class": "glass"}, {"class": "music"}]
    assert "/styles/fonts/MwpIcons/" in (out / "_icons.scss").read_text()
    assert source.read_text() == ICONS_SCSS
