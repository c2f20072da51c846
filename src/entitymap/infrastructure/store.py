"""Entity store boundary.

The mapper never talks to a store itself; callers hand encoded entities to
a client implementing :class:`EntityStore`.  :class:`InMemoryStore` is a
process-local implementation used by tests and the ``roundtrip`` command.
It keeps entities exactly as given, so tags survive a put/get cycle.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Protocol

from entitymap.domain.entity import Entity, Key
from entitymap.domain.errors import InvalidKeyTypeError

if TYPE_CHECKING:
    from entitymap.config.models import StoreConfig

logger = logging.getLogger(__name__)


class EntityStore(Protocol):
    """Operations the mapper's callers need from a store client."""

    def new_key(self, kind: str, identifier: str | int) -> Key: ...

    def put(self, entity: Entity) -> Key: ...

    def get(self, key: Key) -> Entity | None: ...

    def delete(self, key: Key) -> None: ...


class InMemoryStore:
    """Thread-safe dict-backed store partitioned by project and namespace."""

    def __init__(self, project: str, namespace: str = "") -> None:
        self.project = project
        self.namespace = namespace
        self._entities: dict[tuple[str, str | int], Entity] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entities)

    def new_key(self, kind: str, identifier: str | int) -> Key:
        return Key(kind=kind, identifier=identifier)

    def put(self, entity: Entity) -> Key:
        """Insert or replace *entity*. Only root entities can be stored."""
        if entity.key is None:
            msg = "Cannot store an entity without a key"
            raise InvalidKeyTypeError(msg, expected="Key", actual="None")
        with self._lock:
            self._entities[(entity.key.kind, entity.key.identifier)] = entity
        logger.debug("Stored %s in %s/%s", entity.key, self.project, self.namespace or "-")
        return entity.key

    def get(self, key: Key) -> Entity | None:
        with self._lock:
            return self._entities.get((key.kind, key.identifier))

    def delete(self, key: Key) -> None:
        with self._lock:
            self._entities.pop((key.kind, key.identifier), None)

    def clear(self) -> None:
        """Remove every entity."""
        with self._lock:
            self._entities.clear()


def create_store(config: StoreConfig) -> InMemoryStore:
    """Build the configured store client."""
    logger.debug("Creating store for project=%s namespace=%s", config.project, config.namespace)
    return InMemoryStore(project=config.project, namespace=config.namespace)
