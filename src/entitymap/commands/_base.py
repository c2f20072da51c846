"""Click base classes carrying an ``--examples`` flag.

Examples are declared as ``(summary, arguments)`` pairs and rendered under
the invoking command path, so ``--help`` stays short and every example
names the command exactly as the user reached it.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import click

Example = tuple[str, str]


def render_examples(command_path: str, examples: Sequence[Example]) -> str:
    """Format *examples* as commented shell lines under *command_path*."""
    blocks = []
    for summary, arguments in examples:
        line = f"{command_path} {arguments}".rstrip()
        blocks.append(f"  # {summary}\n  $ {line}")
    return "\n\n".join(blocks)


def _examples_option(examples: Sequence[Example]) -> click.Option:
    def show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(render_examples(ctx.command_path, examples))
        ctx.exit(0)

    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=show,
        help="Show usage examples and exit.",
    )


class MapperCommand(click.Command):
    """Command accepting ``examples=[(summary, arguments), ...]``."""

    def __init__(self, *args: Any, examples: Sequence[Example] = (), **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = tuple(examples)
        if self.examples:
            self.params.append(_examples_option(self.examples))


class MapperGroup(click.Group):
    """Group whose subcommands default to :class:`MapperCommand`."""

    command_class = MapperCommand

    def __init__(self, *args: Any, examples: Sequence[Example] = (), **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = tuple(examples)
        if self.examples:
            self.params.append(_examples_option(self.examples))
