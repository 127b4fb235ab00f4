"""The behavior contract and the registry that maps types to implementations.

Implementations are opaque to the engine. Their only contract is:

    execute(organization_id, config, context) -> BehaviorResult

The registry is filled once at process start and consulted by type at
schedule time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from .errors import UnknownBehaviorType

if TYPE_CHECKING:
    from .context import ExecutionContext

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    PRECONDITION_NOT_MET = "precondition_not_met"
    EXTERNAL_CALL_FAILED = "external_call_failed"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class BehaviorResult:
    success: bool
    message: str = ""
    data: dict[str, Any] | None = None
    error: FailureKind | None = None

    @classmethod
    def ok(cls, message: str = "", data: dict[str, Any] | None = None) -> BehaviorResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(
        cls,
        message: str,
        error: FailureKind = FailureKind.UNKNOWN,
        data: dict[str, Any] | None = None,
    ) -> BehaviorResult:
        return cls(success=False, message=message, data=data, error=error)


class Behavior(Protocol):
    """A single pluggable pipeline step.

    Implementations should document which `context.data` keys they read and
    write; the engine cannot check this.
    """

    def execute(
        self, organization_id: str, config: Mapping[str, Any], context: ExecutionContext
    ) -> BehaviorResult: ...


BehaviorFn = Callable[[str, Mapping[str, Any], "ExecutionContext"], BehaviorResult]


@dataclass(frozen=True, slots=True)
class FunctionBehavior:
    """Adapt a plain function to the `Behavior` protocol."""

    fn: BehaviorFn

    def execute(
        self, organization_id: str, config: Mapping[str, Any], context: ExecutionContext
    ) -> BehaviorResult:
        return self.fn(organization_id, config, context)


class BehaviorRegistry:
    """Typed mapping from behavior type to implementation."""

    def __init__(self, behaviors: Mapping[str, Behavior | BehaviorFn] | None = None) -> None:
        self._behaviors: dict[str, Behavior] = {}
        for behavior_type, impl in (behaviors or {}).items():
            self.register(behavior_type, impl)

    def register(self, behavior_type: str, impl: Behavior | BehaviorFn) -> None:
        key = behavior_type.strip()
        if not key:
            raise ValueError("behavior_type must be a non-empty string")
        if not hasattr(impl, "execute"):
            if not callable(impl):
                raise TypeError(f"Behavior for {key!r} must be callable or define execute()")
            impl = FunctionBehavior(impl)
        if key in self._behaviors:
            logger.warning("Replacing registered behavior", extra={"behavior_type": key})
        self._behaviors[key] = impl  # type: ignore[assignment]

    def get(self, behavior_type: str) -> Behavior:
        try:
            return self._behaviors[behavior_type]
        except KeyError:
            raise UnknownBehaviorType(behavior_type) from None

    def ensure_registered(self, behavior_types: Iterable[str]) -> None:
        for behavior_type in behavior_types:
            if behavior_type not in self._behaviors:
                raise UnknownBehaviorType(behavior_type)

    def types(self) -> list[str]:
        return sorted(self._behaviors)

    def __contains__(self, behavior_type: object) -> bool:
        return behavior_type in self._behaviors

    def __len__(self) -> int:
        return len(self._behaviors)
