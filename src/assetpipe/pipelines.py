# pipelines.py
"""
The asset pipelines, declared with the step DSL.

    default        dev build, then live reload + watchers (runs until Ctrl-C)
    build          production bundle
    build-locally  build, then point the index at the local test host
    build-cdn      check CDN config, build, rewrite to the CDN, upload
    lint           eslint over script sources
    rebuild-icons  regenerate the icon stylesheet and class list

Internal pipelines (html-dev, templates-dev, css:*) are what the watchers run.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from . import deploy
from .channel import CSS, HTML
from .config import Config
from .context import BuildContext
from .dsl import Registry, parallel, series, transform
from .server import LiveReloadServer, create_app
from .transforms import files, html, icons, images, lint, styles, templates
from .watcher import WatchBinding, Watcher, bind

STATIC_ASSETS = [
    "favicon.ico",
    "gdpfavicon.ico",
    "robots.txt",
    "styles/fonts/**/*.{otf,eot,svg,ttf,woff,woff2}",
]

# shared partials: a change rebuilds every stylesheet that imports them
_SHARED_SCSS = ["styles/_mixins.scss", "styles/_variables.scss"]

CSS_BUNDLES = {
    "css:application": "styles/application.scss",
    "css:onboarding": "styles/signup-onboarding.scss",
    "css:bootstrap": "styles/bootstrap.scss",
}

DEFAULT_WATCHES: List[WatchBinding] = [
    bind(["index.php", "config.json", "config.local.json"], "html-dev", HTML),
    bind(["scripts/**/*.js", "application/**/*.js"], "html-dev", HTML),
    bind(
        [
            "styles/**/*.scss",
            "application/**/*.scss",
            "assets/styles/**/*.scss",
            "!styles/bootstrap.scss",
            "!styles/signup-onboarding.scss",
        ],
        "css:application",
        CSS,
    ),
    bind(
        [
            "styles/signup-onboarding.scss",
            *_SHARED_SCSS,
            "styles/dashboard/_intro.scss",
            "styles/components/_throbbing.scss",
            "styles/components/_modal-popover.scss",
        ],
        "css:onboarding",
        CSS,
    ),
    bind(["styles/bootstrap.scss", *_SHARED_SCSS], "css:bootstrap", CSS),
    bind(["views/**/*.html", "application/**/*.html"], "templates-dev", HTML),
]


# ---------------------------------------------------------------------
# Small transforms
# ---------------------------------------------------------------------

def clean_api_index(ctx: BuildContext) -> None:
    """Remove the index copies previously handed to the PHP API."""
    if not ctx.config.api_index_dir:
        return
    for name in (html.API_DEV_INDEX, html.API_PROD_INDEX):
        files.clean(ctx, Path(ctx.config.api_index_dir) / name)


def copy_vendor_css(ctx: BuildContext, *, dev: bool) -> None:
    config = ctx.config
    dest = (config.dist if dev else config.tmp) / "styles"
    files.copy(ctx, config.vendor_css, dest, base=config.src, flatten=True)


def copy_static_assets(ctx: BuildContext) -> None:
    files.copy(ctx, STATIC_ASSETS, ctx.config.dist, base=ctx.config.src)


def live_reload(ctx: BuildContext) -> None:
    config = ctx.config
    if not config.live_reload_enabled:
        ctx.console.print_info("Live reload disabled.")
        return
    app = create_app(ctx.broadcaster, static_dir=config.dist, public_path=config.public_path, console=ctx.console)
    server = LiveReloadServer(app, config.server_host, config.live_reload_port)
    server.start()
    ctx.add_service(server)
    ctx.console.print_info(f"Live reload listening on {config.server_host}:{config.live_reload_port}")


def watch_project(ctx: BuildContext) -> None:
    if ctx.scheduler is None:
        raise RuntimeError("watch_project needs a scheduler bound to the build context")
    watcher = Watcher(ctx.config.src, DEFAULT_WATCHES, ctx.scheduler, ctx.broadcaster, console=ctx.console)
    watcher.start()
    ctx.add_service(watcher)


def signal_ready(ctx: BuildContext) -> None:
    ctx.console.print_info("Development setup complete!")
    if not ctx.config.npm_script:
        ctx.console.print_warning("It is recommended to use the `npm start` script to run development environment.")


# ---------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------

def build_registry(config: Config) -> Registry:
    reg = Registry()

    clean_dist = transform("clean-dist", files.clean, config.dist)
    clean_tmp = transform("clean-tmp", files.clean, config.tmp)
    clean_api = transform("clean-api-index", clean_api_index)

    # dev building blocks, also run by the watchers
    reg.register("html-dev", transform("build-html-dev", html.build_html_dev), "Build the development index")
    reg.register(
        "templates-dev",
        transform("build-template-dev", templates.build_template_cache, dev=True),
        "Build the development template cache",
    )
    for name, entry in CSS_BUNDLES.items():
        reg.register(name, transform(f"build-{name}", styles.compile_styles, [entry], dev=True), f"Compile {entry}")
    reg.register(
        "css-dev",
        transform("build-css-dev", styles.compile_styles, dev=True),
        "Compile every stylesheet for development",
    )

    reg.register(
        "default",
        series(
            clean_dist,
            clean_api,
            transform("copy-vendor-css-dev", copy_vendor_css, dev=True),
            parallel("templates-dev", "css-dev", "html-dev"),
            parallel(
                transform("live-reload", live_reload),
                transform("watch-project", watch_project),
                transform("signal-ready", signal_ready),
            ),
        ),
        "Development build, live reload and watchers",
    )

    reg.register(
        "build",
        series(
            clean_dist,
            clean_tmp,
            clean_api,
            parallel(
                transform("copy-vendor-css", copy_vendor_css, dev=False),
                transform("optimize-images", images.optimize_images),
            ),
            parallel(
                transform("copy-static-assets", copy_static_assets),
                transform("build-template", templates.build_template_cache, dev=False),
                transform("build-css", styles.compile_styles, dev=False),
            ),
            transform("build-html", html.build_html_prod),
            clean_tmp,
        ),
        "Production build",
    )

    reg.register(
        "build-locally",
        series("build", transform("rewrite-host-base", html.rewrite_host_base)),
        "Production build pointed at the local test host",
    )

    reg.register(
        "build-cdn",
        series(
            transform("assert-cdn-config", deploy.check_cdn_config),
            "build",
            transform("stamp-version", deploy.stamp_version),
            transform("switch-to-cdn", deploy.switch_to_cdn),
            transform("upload", deploy.upload),
        ),
        "Production build deployed to the CDN",
    )

    reg.register("lint", transform("eslint", lint.lint), "Run eslint over script sources")
    reg.register("lint-fix", transform("eslint-fix", lint.lint, fix=True), "Run eslint --fix over script sources")
    reg.register("rebuild-icons", transform("generate-icons", icons.generate_icons), "Regenerate icon font classes")

    reg.validate()
    return reg
