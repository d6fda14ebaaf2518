# cli.py
from __future__ import annotations

import sys
from typing import Optional

import click

from assetpipe.config import Config, apply_flags, load_config
from assetpipe.context import BuildContext
from assetpipe.deploy import assert_cdn_config
from assetpipe.errors import ConfigError, PipelineFailed
from assetpipe.pipelines import build_registry
from assetpipe.scheduler import Scheduler
from assetpipe.ui.console import Console, get_console, set_console


def _load(ctx: click.Context) -> Config:
    """Effective configuration for this invocation (local file + process flags)."""
    console = get_console()
    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        console.print_error(
            "Invalid configuration",
            str(e),
            suggestion="Fix the local config file or point --config at another one.",
        )
        sys.exit(1)
    return apply_flags(config, **ctx.obj["flags"])


def _run(ctx: click.Context, name: str, config: Optional[Config] = None, *, keep_alive: bool = False) -> None:
    """
    Run one pipeline and exit non-zero on failure.

    keep_alive: block after a successful run until Ctrl-C (dev server and watchers).
    """
    console = get_console()
    config = config or _load(ctx)
    build_ctx = BuildContext(config=config, console=console)

    try:
        scheduler = Scheduler(build_registry(config), build_ctx)
        results = scheduler.run(name)
        console.print_results(results)
        if keep_alive:
            build_ctx.wait()

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except PipelineFailed as e:
        console.print_results(e.results)
        console.print_error(f"Pipeline '{e.pipeline}' failed", str(e.error))
        sys.exit(1)
    except ConfigError as e:
        console.print_error("Invalid configuration", str(e))
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)
    finally:
        build_ctx.stop()


@click.group(invoke_without_command=True)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Local config file (defaults to $ASSETPIPE_CONFIG, then assetpipe.local.json)",
)
@click.option("--no-livereload", is_flag=True, default=False, help="Do not start the live reload server")
@click.option("--no-source-maps", is_flag=True, default=False, help="Do not generate source maps")
@click.option("--no-splash", is_flag=True, default=False, help="Hide the application splash screen")
@click.option("--npm-script", is_flag=True, default=False, help="Invoked through the npm start script")
@click.pass_context
def cli(ctx, debug, config_path, no_livereload, no_source_maps, no_splash, npm_script):
    """assetpipe: front-end asset builds, live reload and CDN deployment."""
    set_console(Console(debug=debug))
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path
    ctx.obj["flags"] = {
        "no_livereload": no_livereload,
        "no_source_maps": no_source_maps,
        "no_splash": no_splash,
        "npm_script": npm_script,
    }

    if ctx.invoked_subcommand is None:
        ctx.invoke(default)


@cli.command()
@click.pass_context
def default(ctx):
    """Development build, then live reload and file watchers until Ctrl-C."""
    _run(ctx, "default", keep_alive=True)


@cli.command()
@click.pass_context
def build(ctx):
    """Production build into the dist directory."""
    _run(ctx, "build")


@cli.command("build-locally")
@click.pass_context
def build_locally(ctx):
    """Production build with asset URLs pointed at the local test host."""
    _run(ctx, "build-locally")


@cli.command("build-cdn")
@click.pass_context
def build_cdn(ctx):
    """Production build, rewritten to the CDN and uploaded."""
    console = get_console()
    config = _load(ctx)
    # fail before anything is cleaned or built
    try:
        config = assert_cdn_config(config)
    except ConfigError as e:
        console.print_error("CDN is not configured", str(e))
        sys.exit(1)
    _run(ctx, "build-cdn", config)


@cli.command()
@click.option("--fix-lint-errors", is_flag=True, default=False, help="Let eslint fix what it can")
@click.pass_context
def lint(ctx, fix_lint_errors):
    """Run eslint over the script sources."""
    _run(ctx, "lint-fix" if fix_lint_errors else "lint")


@cli.command("rebuild-icons")
@click.pass_context
def rebuild_icons(ctx):
    """Regenerate the icon stylesheet and class list."""
    _run(ctx, "rebuild-icons")


@cli.command("list")
@click.pass_context
def list_pipelines(ctx):
    """List registered pipelines."""
    console = get_console()
    registry = build_registry(_load(ctx))
    for name in registry.names():
        description = registry.get(name).description
        console.print_info(f"  {name:<16} {description}")


if __name__ == "__main__":
    cli()
