"""fedload CLI - inspect how import names resolve on the configured load path."""

from __future__ import annotations

import os
from pathlib import Path

import click
from rich.table import Table

from . import __version__
from .config import DEFAULT_LOAD_PATH
from .config import LoaderSettings
from .config import default_depot_path
from .config import parse_path_list
from .console import console
from .console import escape_markup
from .content_address import content_slug
from .content_address import slug
from .errors import FedloadError
from .filesystem import LocalFileSystem
from .identity import Identity
from .identity import parse_identity
from .logging_setup import init_json_logging
from .paths import build_stack
from .paths import create_environment
from .paths import expand_load_path
from .resolver import Resolver


def _identity_option(_ctx, _param, value: str | None) -> Identity | None:
    if value is None:
        return None
    try:
        return parse_identity(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a valid UUID")


def _settings(ctx: click.Context) -> LoaderSettings:
    return ctx.obj["settings"]


def _fail(ctx: click.Context, error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape_markup(error)}", soft_wrap=True)
    ctx.exit(1)


def _resolver(ctx: click.Context) -> Resolver:
    return Resolver(build_stack(_settings(ctx), LocalFileSystem()))


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option("--load-path", help=f"Override the load path ({os.pathsep}-separated)")
@click.option("--depot-path", help=f"Override the depot path ({os.pathsep}-separated)")
@click.option("--project", type=click.Path(path_type=Path), help="Active project for the '@' entry")
@click.pass_context
def cli(ctx: click.Context, load_path: str | None, depot_path: str | None, project: Path | None):
    """fedload - federated package resolution."""
    try:
        settings = LoaderSettings.from_env()
    except FedloadError as e:
        _fail(ctx, e)
        return

    updates: dict = {}
    if load_path is not None:
        updates["load_path"] = parse_path_list(load_path, DEFAULT_LOAD_PATH)
    if depot_path is not None:
        updates["depot_path"] = [Path(p) for p in parse_path_list(depot_path, default_depot_path())]
    if project is not None:
        updates["project"] = project
    ctx.obj = {"settings": settings.model_copy(update=updates)}

    if ctx.invoked_subcommand is None:
        click.echo("\n" + ctx.get_help())
        ctx.exit()


@cli.command("path")
@click.pass_context
def show_path(ctx: click.Context):
    """Show the expanded load path and depot path."""
    settings = _settings(ctx)
    filesystem = LocalFileSystem()

    table = Table(title="Load Path", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Entry", style="green")
    table.add_column("Location", style="magenta")
    table.add_column("Kind", style="yellow")

    try:
        for index, item in enumerate(expand_load_path(settings, filesystem), start=1):
            env = create_environment(item.path, settings, filesystem)
            table.add_row(str(index), escape_markup(item.entry), escape_markup(item.path), env.kind)
    except FedloadError as e:
        _fail(ctx, e)
        return
    console.print(table)

    depots = Table(title="Depot Path", show_header=True, header_style="bold cyan")
    depots.add_column("#", justify="right", style="dim")
    depots.add_column("Depot", style="magenta")
    depots.add_column("Exists", style="dim")
    for index, depot in enumerate(settings.depot_path, start=1):
        depots.add_row(str(index), escape_markup(depot), "yes" if filesystem.is_dir(depot) else "no")
    console.print(depots)


@cli.command("resolve")
@click.argument("name")
@click.option("--from", "context", callback=_identity_option, help="Identity of the importing package")
@click.pass_context
def resolve_cmd(ctx: click.Context, name: str, context: Identity | None):
    """Resolve NAME to a package identity."""
    try:
        identity = _resolver(ctx).resolve(context, name)
    except FedloadError as e:
        _fail(ctx, e)
        return
    console.print(f"[green]{escape_markup(name)}[/green] {identity}", soft_wrap=True)


@cli.command("locate")
@click.argument("name")
@click.option("--from", "context", callback=_identity_option, help="Identity of the importing package")
@click.pass_context
def locate_cmd(ctx: click.Context, name: str, context: Identity | None):
    """Resolve NAME and show its entry point."""
    try:
        resolver = _resolver(ctx)
        identity = resolver.resolve(context, name)
        location = resolver.locate(identity, name)
    except FedloadError as e:
        _fail(ctx, e)
        return
    console.print(f"[green]{escape_markup(name)}[/green] {identity}", soft_wrap=True)
    console.print(f"  [magenta]{escape_markup(location)}[/magenta]", soft_wrap=True)


@cli.command("roots")
@click.pass_context
def roots_cmd(ctx: click.Context):
    """List names importable from the main context."""
    table = Table(title="Roots", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="green")
    table.add_column("Identity")
    table.add_column("Environment", style="dim")

    try:
        stack = build_stack(_settings(ctx), LocalFileSystem())
        rows = sorted(stack.iter_roots(), key=lambda row: row[0])
    except FedloadError as e:
        _fail(ctx, e)
        return

    if not rows:
        console.print("[dim]No packages visible from the main context[/dim]")
        return
    for name, identity, env in rows:
        table.add_row(escape_markup(name), str(identity), escape_markup(repr(env)))
    console.print(table)


@cli.command("slug")
@click.argument("identity", callback=_identity_option)
@click.argument("content_hash", required=False)
@click.option(
    "--file",
    "content_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Hash the contents of FILE instead of passing CONTENT_HASH",
)
@click.pass_context
def slug_cmd(ctx: click.Context, identity: Identity, content_hash: str | None, content_file: Path | None):
    """Show the depot slug for IDENTITY and CONTENT_HASH (or --file)."""
    if (content_hash is None) == (content_file is None):
        raise click.UsageError("Give exactly one of CONTENT_HASH or --file", ctx)
    if content_file is not None:
        click.echo(content_slug(identity, content_file.read_bytes()))
    else:
        click.echo(slug(identity, content_hash))


def main() -> None:
    """Console script entry point."""
    init_json_logging()
    cli()


if __name__ == "__main__":
    main()
