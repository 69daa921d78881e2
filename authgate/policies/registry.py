"""Ability registry and policy resolution."""

import logging
from collections.abc import Callable, Iterable
from typing import Any, Optional, Union

from authgate.utils.callbacks import import_string, snake_case

logger = logging.getLogger(__name__)

AbilityCallback = Callable[..., Any]
ResourceKey = Union[str, type]
PolicyReference = Union[str, type, object]


class AbilityRegistry:
    """Named ability callbacks, populated at boot."""

    def __init__(self) -> None:
        self._abilities: dict[str, AbilityCallback] = {}

    def define(self, name: str, callback: AbilityCallback) -> None:
        """Register or overwrite an ability."""
        if name in self._abilities:
            logger.debug(f"Overwriting ability '{name}'")
        self._abilities[name] = callback

    def get(self, name: str) -> Optional[AbilityCallback]:
        return self._abilities.get(name)

    def has(self, names: Union[str, Iterable[str]]) -> bool:
        """True if every given ability name is registered."""
        if isinstance(names, str):
            names = [names]
        return all(name in self._abilities for name in names)

    def snapshot(self) -> dict[str, AbilityCallback]:
        return dict(self._abilities)

    def __contains__(self, name: object) -> bool:
        return name in self._abilities

    def __len__(self) -> int:
        return len(self._abilities)


class PolicyResolver:
    """
    Resource -> policy bindings.

    A binding key is either a string tag or a class. A policy is an instance
    (used as is), a class (instantiated once on first use) or a
    ``"package.module:ClassName"`` reference (imported, then instantiated once
    on first use).
    """

    def __init__(self) -> None:
        self._bindings: dict[ResourceKey, PolicyReference] = {}
        self._resolved: dict[ResourceKey, Any] = {}

    def bind(self, key: ResourceKey, policy: PolicyReference) -> None:
        """Bind ``policy`` to a resource key, replacing any earlier binding."""
        self._bindings[key] = policy
        self._resolved.pop(key, None)

    def bindings(self) -> dict[ResourceKey, PolicyReference]:
        return dict(self._bindings)

    def resolve(self, policy: PolicyReference) -> Any:
        """Turn a policy reference into a policy object."""
        if isinstance(policy, str):
            policy = import_string(policy)
        if isinstance(policy, type):
            return policy()
        return policy

    def policy_for(self, resource: Any) -> Optional[Any]:
        """Find the policy bound to ``resource`` (an instance or a class)."""
        key = self._key_for(resource)
        if key is None:
            return None
        if key not in self._resolved:
            self._resolved[key] = self.resolve(self._bindings[key])
            logger.debug(f"Resolved policy for '{_describe(key)}'")
        return self._resolved[key]

    def _key_for(self, resource: Any) -> Optional[ResourceKey]:
        if resource is None:
            return None

        cls = resource if isinstance(resource, type) else type(resource)

        # Explicit resource tag takes precedence over the class
        tag = getattr(resource, "__resource_key__", None)
        if isinstance(tag, str) and tag in self._bindings:
            return tag

        for klass in cls.__mro__:
            if klass in self._bindings:
                return klass

        if cls.__name__ in self._bindings:
            return cls.__name__

        return None

    @staticmethod
    def method_for(policy: Any, ability: str) -> Optional[Callable[..., Any]]:
        """Return the policy method for ``ability`` (verbatim, then snake_case)."""
        for name in (ability, snake_case(ability)):
            if name.startswith("_") or name == "before":
                continue
            method = getattr(policy, name, None)
            if callable(method):
                return method
        return None


def _describe(key: ResourceKey) -> str:
    return key if isinstance(key, str) else key.__name__
