"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy service construction and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

import json
from typing import IO, TYPE_CHECKING, Any

import click

from entitymap.config.logging import configure_logging
from entitymap.output.formatters import format_result

if TYPE_CHECKING:
    from entitymap.config.settings import EntitymapSettings
    from entitymap.services.mapping import MappingService
    from entitymap.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: EntitymapSettings) -> None:
        self.settings = settings
        self._service: MappingService | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def service(self) -> MappingService:
        """The mapping service (created lazily on first access)."""
        if self._service is None:
            from entitymap.services.mapping import MappingService

            self._service = MappingService(self.settings)
        return self._service

    def read_json(self, source: IO[str]) -> dict[str, Any]:
        """Parse a JSON object from an open file, exiting with status 1 on bad input."""
        try:
            data = json.load(source)
        except json.JSONDecodeError as exc:
            raise click.ClickException(f"Invalid JSON input: {exc}") from exc
        if not isinstance(data, dict):
            raise click.ClickException("JSON input must be an object")
        return data

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
        * Failure: writes to stderr, exits with code 1.
        """
        output = format_result(result, json_output=self.settings.json_output)
        if result.ok:
            click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
