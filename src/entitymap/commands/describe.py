"""describe: show the field descriptors of a record type."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from entitymap.commands._base import MapperCommand

if TYPE_CHECKING:
    from entitymap.commands._context import AppContext


@click.command(
    cls=MapperCommand,
    examples=[
        ("Describe a top-level record", "shop.models:Order"),
        ("Describe a class nested inside another", "shop.models:Order.LineItem"),
    ],
)
@click.argument("type_path")
@click.pass_obj
def describe(app: AppContext, type_path: str) -> None:
    """Show how TYPE_PATH (module:ClassName) maps onto entity properties."""
    app.emit(app.service.describe(type_path))
