"""Root CLI group: global output/logging flags, settings, and the mapping commands."""

from __future__ import annotations

import click

from entitymap import __version__
from entitymap.commands import register_commands
from entitymap.commands._base import MapperGroup
from entitymap.commands._context import AppContext
from entitymap.config.settings import EntitymapSettings


@click.group(
    name="entitymap",
    cls=MapperGroup,
    invoke_without_command=True,
    examples=[
        ("Show how a record type maps onto entity properties", "describe shop.models:Order"),
        ("Encode a record as JSON for scripting", "--json encode shop.models:Order -i order.json"),
        ("Use a config file outside the project tree", "-c ~/entitymap.toml roundtrip ..."),
    ],
)
@click.version_option(version=__version__, prog_name="entitymap")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr.")
@click.option("--log-json", is_flag=True, help="Log records as JSON lines on stderr.")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=None,
    help="Config file to read instead of discovering entitymap.toml / pyproject.toml.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """entitymap: map typed records to and from generic store entities.

    Record types are named as ``module:ClassName`` and must be importable
    from the current environment.
    """
    ctx.obj = AppContext(
        EntitymapSettings.from_cli(
            config_path=config_path,
            json_output=json_output,
            verbose=verbose,
            log_json=log_json,
        )
    )
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
