"""Ability gate: hooks, abilities and policy dispatch."""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Optional, Union

from authgate.utils.callbacks import resolve_result
from authgate.utils.exceptions import AuthorizationError

from .base_policy import Action
from .registry import AbilityCallback, AbilityRegistry, PolicyReference, PolicyResolver, ResourceKey

logger = logging.getLogger(__name__)

UserResolver = Callable[[], Any]
BeforeHook = Callable[[Any, str, list], Any]
AfterHook = Callable[[Any, str, bool, list], Any]


async def _no_user() -> None:
    return None


class Gate:
    """
    Authorization gate.

    A check runs, strictly in sequence:

    1. ``before`` hooks in registration order; the first one returning
       something other than ``None`` decides the pre-result.
    2. Otherwise the ability: a directly defined callback wins, then the
       policy bound to the first argument; undefined abilities are denied.
    3. ``after`` hooks in registration order; each non-``None`` return value
       replaces the running result. After hooks also see results decided by
       a ``before`` hook.

    Usage:
        gate = Gate(user_resolver=auth.user_resolver)
        gate.define("edit-settings", lambda user: user.role == "admin")
        gate.policy(Post, PostPolicy)

        await gate.allows("update", [post])
        await gate.for_user(other_user).authorize("edit-settings")
    """

    def __init__(
        self,
        user_resolver: Optional[UserResolver] = None,
        *,
        abilities: Optional[AbilityRegistry] = None,
        policies: Optional[PolicyResolver] = None,
        before_hooks: Optional[Iterable[BeforeHook]] = None,
        after_hooks: Optional[Iterable[AfterHook]] = None,
    ):
        self.user_resolver = user_resolver or _no_user
        self._abilities = abilities if abilities is not None else AbilityRegistry()
        self._policies = policies if policies is not None else PolicyResolver()
        self._before_hooks: list[BeforeHook] = list(before_hooks or [])
        self._after_hooks: list[AfterHook] = list(after_hooks or [])

    # Registration

    def define(self, ability: str, callback: AbilityCallback) -> "Gate":
        """Define a new ability."""
        self._abilities.define(ability, callback)
        return self

    def policy(self, resource: ResourceKey, policy: PolicyReference) -> "Gate":
        """Bind a policy (class, instance or import reference) to a resource."""
        self._policies.bind(resource, policy)
        return self

    def resource(
        self,
        name: str,
        policy: PolicyReference,
        abilities: Optional[Mapping[str, str]] = None,
    ) -> "Gate":
        """
        Define ``<name>.<ability>`` abilities backed by policy methods.

        Usage:
            gate.resource("post", PostPolicy)
            # post.viewAny, post.view, post.create, post.update, post.delete

            gate.resource("comment", CommentPolicy, {"approve": "approve"})
        """
        methods = dict(abilities) if abilities is not None else {action.value: action.method for action in Action}
        resolved: dict[str, Any] = {}

        def delegate(ability: str, method: str) -> AbilityCallback:
            async def call_policy(user: Any, *args: Any) -> Any:
                if "policy" not in resolved:
                    resolved["policy"] = self._policies.resolve(policy)
                target = self._policies.method_for(resolved["policy"], method) or self._policies.method_for(
                    resolved["policy"], ability
                )
                if target is None:
                    logger.debug(f"Policy for resource '{name}' has no method for '{ability}'; denying")
                    return False
                return await resolve_result(target(user, *args))

            return call_policy

        for ability, method in methods.items():
            self.define(f"{name}.{ability}", delegate(ability, method))
        return self

    def before(self, callback: BeforeHook) -> "Gate":
        """Register a hook run before every check."""
        self._before_hooks.append(callback)
        return self

    def after(self, callback: AfterHook) -> "Gate":
        """Register a hook run after every check."""
        self._after_hooks.append(callback)
        return self

    # Introspection

    def has(self, ability: Union[str, Iterable[str]]) -> bool:
        """Check whether an ability, or every ability of a list, is defined."""
        return self._abilities.has(ability)

    def abilities(self) -> dict[str, AbilityCallback]:
        return self._abilities.snapshot()

    def get_policy_for(self, resource: Any) -> Optional[Any]:
        return self._policies.policy_for(resource)

    # Evaluation

    async def allows(self, ability: str, args: Sequence[Any] = ()) -> bool:
        return await self.check(ability, args)

    async def denies(self, ability: str, args: Sequence[Any] = ()) -> bool:
        return not await self.allows(ability, args)

    async def check(self, ability: str, args: Sequence[Any] = ()) -> bool:
        """Evaluate ``ability`` for the resolved user."""
        args = _as_list(args)
        user = await self.resolve_user()

        result = None
        for hook in self._before_hooks:
            result = await resolve_result(hook(user, ability, args))
            if result is not None:
                logger.debug(f"Ability '{ability}' decided by before hook: {result!r}")
                break

        if result is None:
            result = await self._evaluate(user, ability, args)

        for hook in self._after_hooks:
            after_result = await resolve_result(hook(user, ability, result, args))
            if after_result is not None:
                result = after_result

        return bool(result)

    async def any(self, abilities: Iterable[str], args: Sequence[Any] = ()) -> bool:
        """True if at least one ability passes."""
        for ability in abilities:
            if await self.check(ability, args):
                return True
        return False

    async def every(self, abilities: Iterable[str], args: Sequence[Any] = ()) -> bool:
        """True if all abilities pass."""
        for ability in abilities:
            if not await self.check(ability, args):
                return False
        return True

    async def authorize(self, ability: str, args: Sequence[Any] = ()) -> bool:
        """Check an ability and raise ``AuthorizationError`` when it is denied."""
        if not await self.check(ability, args):
            raise AuthorizationError(
                f"This action is unauthorized. Missing ability: {ability}",
                details={"ability": ability},
            )
        return True

    async def resolve_user(self) -> Any:
        return await resolve_result(self.user_resolver())

    def for_user(self, user: Any) -> "Gate":
        """
        Return a gate bound to ``user``.

        Abilities and policies are shared with this gate; the hook lists are
        copied so hooks added on either side afterwards stay local.
        """

        async def resolver() -> Any:
            return user

        return Gate(
            resolver,
            abilities=self._abilities,
            policies=self._policies,
            before_hooks=self._before_hooks,
            after_hooks=self._after_hooks,
        )

    async def _evaluate(self, user: Any, ability: str, args: list) -> Any:
        callback = self._abilities.get(ability)
        if callback is not None:
            return await resolve_result(callback(user, *args))

        if args:
            policy = self._policies.policy_for(args[0])
            method = self._policies.method_for(policy, ability) if policy is not None else None
            if method is not None:
                return await self._call_policy_method(policy, method, user, ability, args)

        logger.debug(f"Ability '{ability}' is not defined; denying")
        return False

    @staticmethod
    async def _call_policy_method(policy: Any, method: Callable[..., Any], user: Any, ability: str, args: list) -> Any:
        before = getattr(policy, "before", None)
        if callable(before):
            result = await resolve_result(before(user, ability, *args))
            if result is not None:
                return result

        return await resolve_result(method(user, *args))


def _as_list(args: Any) -> list:
    if args is None:
        return []
    if isinstance(args, (list, tuple)):
        return list(args)
    # A single resource passed without wrapping
    return [args]
