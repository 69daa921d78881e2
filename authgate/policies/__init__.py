"""Authorization gate and policies."""

from .base_policy import RESOURCE_METHODS, Action, BasePolicy
from .gate import Gate
from .registry import AbilityRegistry, PolicyResolver

__all__ = [
    "Action",
    "BasePolicy",
    "RESOURCE_METHODS",
    "AbilityRegistry",
    "PolicyResolver",
    "Gate",
]
