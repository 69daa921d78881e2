"""Helpers for callbacks that may be plain functions or coroutines."""

import importlib
import inspect
import re
from typing import Any


async def resolve_result(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def import_string(reference: str) -> Any:
    """
    Import an object from a ``"package.module:Name"`` reference.

    A dotted ``"package.module.Name"`` form is accepted too.
    """
    if ":" in reference:
        module_path, _, attribute = reference.partition(":")
    else:
        module_path, _, attribute = reference.rpartition(".")

    if not module_path or not attribute:
        raise ImportError(f"Invalid import reference: {reference!r}")

    module = importlib.import_module(module_path)
    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise ImportError(f"Module {module_path!r} has no attribute {attribute!r}") from e


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def snake_case(name: str) -> str:
    """Convert ``viewAny`` or ``update-post`` to ``view_any`` / ``update_post``."""
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").replace(".", "_").lower()
