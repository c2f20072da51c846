"""Shared helpers for service modules."""

from __future__ import annotations

import functools
import importlib
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Concatenate, ParamSpec, TypeVar

import structlog

if TYPE_CHECKING:
    from entitymap.services.result import ServiceResult

logger = logging.getLogger(__name__)

_P = ParamSpec("_P")
_S = TypeVar("_S")


def load_record_type(path: str) -> type:
    """Import a record type from ``"package.module:ClassName"``.

    Nested classes are addressed with dots after the colon
    (``"pkg.mod:Outer.Inner"``).

    Raises:
        LookupError: If the module or attribute cannot be found, or the
            target is not a class.
    """
    module_name, sep, qualname = path.partition(":")
    if not sep or not module_name or not qualname:
        msg = f"Expected 'module:ClassName', got {path!r}"
        raise LookupError(msg)
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"Cannot import module {module_name!r}: {exc}"
        raise LookupError(msg) from exc
    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            msg = f"{module_name!r} has no attribute {qualname!r}"
            raise LookupError(msg) from exc
    if not isinstance(target, type):
        msg = f"{path!r} is not a class"
        raise LookupError(msg)
    return target


def logged_operation(
    op: str,
) -> Callable[
    [Callable[Concatenate[_S, str, _P], ServiceResult]],
    Callable[Concatenate[_S, str, _P], ServiceResult],
]:
    """Decorator for service methods taking ``(self, type_path, ...)``.

    Binds ``op`` and ``record_type`` into structlog's context for every
    record logged during the call, then logs the outcome and duration.
    """

    def decorate(
        func: Callable[Concatenate[_S, str, _P], ServiceResult],
    ) -> Callable[Concatenate[_S, str, _P], ServiceResult]:
        @functools.wraps(func)
        def wrapper(
            self: _S, type_path: str, /, *args: _P.args, **kwargs: _P.kwargs
        ) -> ServiceResult:
            started = time.perf_counter()
            with structlog.contextvars.bound_contextvars(op=op, record_type=type_path):
                result = func(self, type_path, *args, **kwargs)
                outcome = "ok" if result.error is None else result.error.code
                logger.debug(
                    "%s finished: %s in %.2fms",
                    op,
                    outcome,
                    (time.perf_counter() - started) * 1000,
                )
            return result

        return wrapper

    return decorate
