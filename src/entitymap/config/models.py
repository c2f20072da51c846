"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, entitymap.toml only contains
overrides.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class MappingConfig(BaseModel):
    """[mapping] section."""

    model_config = {"frozen": True}

    identity_field: str = "id"
    default_kind: str | None = None


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    project: str = "local-project"
    namespace: str = ""


class EntitymapConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    mapping: MappingConfig = Field(default_factory=MappingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
