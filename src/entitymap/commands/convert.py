"""Standalone commands: encode, decode, roundtrip.

Each reads a JSON document from ``--input`` (stdin by default).
"""

from __future__ import annotations

from typing import IO, TYPE_CHECKING

import click

from entitymap.commands._base import MapperCommand

if TYPE_CHECKING:
    from entitymap.commands._context import AppContext

_input_option = click.option(
    "--input",
    "-i",
    "source",
    type=click.File("r", encoding="utf-8"),
    default="-",
    show_default=True,
    help="JSON file to read.",
)
_id_field_option = click.option(
    "--id-field",
    default=None,
    help="Identity field name. Default: [mapping] identity_field.",
)
_kind_option = click.option(
    "--kind",
    default=None,
    help="Entity kind. Default: [mapping] default_kind, else the class name.",
)


@click.command(
    cls=MapperCommand,
    examples=[
        ("Encode a record from a file", "shop.models:Order --input order.json"),
        (
            "Pick the key field and kind explicitly",
            "shop.models:Order --kind Order --id-field order_id",
        ),
    ],
)
@click.argument("type_path")
@_input_option
@_id_field_option
@_kind_option
@click.pass_obj
def encode(
    app: AppContext,
    type_path: str,
    source: IO[str],
    id_field: str | None,
    kind: str | None,
) -> None:
    """Encode a JSON record of TYPE_PATH into an entity document."""
    payload = app.read_json(source)
    app.emit(app.service.encode(type_path, payload, identity_field=id_field, kind=kind))


@click.command(
    cls=MapperCommand,
    examples=[
        ("Decode an entity document from a file", "shop.models:Order --input entity.json"),
        ("Read the document from stdin", "shop.models:Order < entity.json"),
    ],
)
@click.argument("type_path")
@_input_option
@_id_field_option
@click.pass_obj
def decode(app: AppContext, type_path: str, source: IO[str], id_field: str | None) -> None:
    """Decode an entity document into a JSON record of TYPE_PATH."""
    entity_doc = app.read_json(source)
    app.emit(app.service.decode(type_path, entity_doc, identity_field=id_field))


@click.command(
    cls=MapperCommand,
    examples=[
        ("Check that a record survives the store unchanged", "shop.models:Order -i order.json"),
    ],
)
@click.argument("type_path")
@_input_option
@_id_field_option
@_kind_option
@click.pass_obj
def roundtrip(
    app: AppContext,
    type_path: str,
    source: IO[str],
    id_field: str | None,
    kind: str | None,
) -> None:
    """Encode, store, fetch and decode a record, failing if it changed."""
    payload = app.read_json(source)
    app.emit(app.service.roundtrip(type_path, payload, identity_field=id_field, kind=kind))
