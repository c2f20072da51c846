"""EntitymapSettings: CLI flags, env vars, and TOML config merged into one object.

Sources, strongest first:

1. keyword arguments (the root CLI group's flags)
2. ``ENTITYMAP_*`` environment variables, ``__`` between section and key
   (``ENTITYMAP_MAPPING__IDENTITY_FIELD=uuid``)
3. ``entitymap.toml`` or ``[tool.entitymap]`` in ``pyproject.toml``
4. defaults baked into :mod:`entitymap.config.models`

pydantic-settings builds the source chain per class, not per instance, so
the config file chosen by :meth:`EntitymapSettings.from_cli` is handed to
:class:`TomlSettingsSource` through thread-local state for the duration of
one construction.
"""

from __future__ import annotations

import threading
import tomllib
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from entitymap.config.discovery import find_config, read_config_table
from entitymap.config.models import MappingConfig, StoreConfig

_pending = threading.local()


@contextmanager
def _config_file(path: Path | None) -> Iterator[None]:
    _pending.path = path
    try:
        yield
    finally:
        _pending.path = None


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings table read from the discovered config file, if any."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self._table: dict[str, Any] = {}
        if path is not None and path.is_file():
            try:
                self._table = read_config_table(path)
            except tomllib.TOMLDecodeError as exc:
                raise click.ClickException(f"Invalid TOML in {path}: {exc}") from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._table.get(field_name), field_name, field_name in self._table

    def __call__(self) -> dict[str, Any]:
        return dict(self._table)


class EntitymapSettings(BaseSettings):
    """Frozen, merged settings for one CLI invocation.

    Attributes:
        config_path: The config file that was read, or None.
        json_output: Emit results as JSON.
        verbose: DEBUG logging for the ``entitymap`` logger.
        log_json: Render log records as JSON lines.
        mapping: ``[mapping]`` defaults for identity field and kind.
        store: ``[store]`` project and namespace.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "ENTITYMAP_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None
    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    mapping: MappingConfig = Field(default_factory=MappingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_pending, "path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        start: Path | None = None,
        **cli_flags: Any,
    ) -> EntitymapSettings:
        """Build settings for a CLI run.

        An explicit *config_path* must name an existing file; otherwise the
        config file is discovered from *start* (default: cwd).  Flags passed
        as None are left to the weaker sources.

        Raises:
            click.ClickException: If *config_path* is not a file.
        """
        path: Path | None
        if config_path:
            path = Path(config_path)
            if not path.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
        else:
            path = find_config(start)

        overrides = {name: value for name, value in cli_flags.items() if value is not None}
        with _config_file(path):
            return cls(config_path=path, **overrides)
