"""The behavior scheduler.

Given a candidate behavior list and a context, the scheduler:

1. keeps enabled behaviors whose trigger predicate matches the context
2. orders them by priority, highest first, keeping declaration order on ties
3. runs them one at a time, merging each successful step's data into the context
4. applies the failure policy when a step fails

Steps never overlap: a later behavior may read what an earlier one wrote.
There is no timeout here. A caller that needs bounded latency wraps its
behavior implementations and reports a timeout as `external_call_failed`.

`rollback` only halts the pipeline. Side effects of steps that already ran are
not undone; `on_rollback` is the hook for wiring compensation later.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from .behaviors import BehaviorRegistry, BehaviorResult, FailureKind
from .context import ExecutionContext, ExecutionResult, StepResult
from .models import BehaviorInstance, FailurePolicy
from .notifier import FailureNotification, Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RollbackEvent:
    failed_step: StepResult
    completed_steps: list[StepResult]
    context: ExecutionContext


RollbackHook = Callable[[RollbackEvent], None]


def matches_triggers(behavior: BehaviorInstance, context: ExecutionContext) -> bool:
    triggers = behavior.triggers
    if triggers is None:
        return True
    if triggers.input_kinds is not None and not (set(triggers.input_kinds) & context.input_kinds):
        return False
    if triggers.object_kinds is not None and not (
        set(triggers.object_kinds) & context.object_kinds
    ):
        return False
    if triggers.workflow_names is not None and context.workflow_name not in triggers.workflow_names:
        return False
    return True


def order_by_priority(behaviors: Iterable[BehaviorInstance]) -> list[BehaviorInstance]:
    """Enabled behaviors, highest priority first.

    `sorted` is stable, so equal priorities keep their original relative order.
    """

    return sorted((b for b in behaviors if b.enabled), key=lambda b: -b.priority)


def schedule(
    behaviors: Iterable[BehaviorInstance], context: ExecutionContext
) -> list[BehaviorInstance]:
    """Eligible behaviors in execution order."""

    return [b for b in order_by_priority(behaviors) if matches_triggers(b, context)]


class BehaviorScheduler:
    def __init__(
        self,
        registry: BehaviorRegistry,
        *,
        notifier: Notifier | None = None,
        on_rollback: RollbackHook | None = None,
    ) -> None:
        self.registry = registry
        self.notifier = notifier
        self.on_rollback = on_rollback

    def run(
        self,
        behaviors: Sequence[BehaviorInstance],
        context: ExecutionContext,
        failure_policy: FailurePolicy | str,
        *,
        zero_tolerance: bool = False,
    ) -> ExecutionResult:
        """Execute `behaviors` against `context` under `failure_policy`.

        Raises:
            UnknownBehaviorType: A scheduled behavior has no registered
                implementation. Raised before any step runs.
        """

        policy = FailurePolicy(failure_policy)
        ordered = schedule(behaviors, context)
        self.registry.ensure_registered(b.type for b in ordered)

        logger.info(
            "Starting behavior pipeline",
            extra={
                "organization_id": context.organization_id,
                "workflow_name": context.workflow_name,
                "candidates": len(behaviors),
                "scheduled": len(ordered),
                "failure_policy": policy.value,
            },
        )

        steps: list[StepResult] = []
        errors: list[str] = []
        success = True

        for index, behavior in enumerate(ordered):
            logger.debug(
                "Running behavior",
                extra={
                    "behavior_id": behavior.id,
                    "behavior_type": behavior.type,
                    "priority": behavior.priority,
                },
            )
            result = self._invoke(behavior, context)

            if result.success:
                data = dict(result.data) if result.data is not None else None
                context.merge(data)
                steps.append(
                    StepResult(
                        behavior_id=behavior.id,
                        behavior_type=behavior.type,
                        success=True,
                        message=result.message,
                        data=data,
                    )
                )
                logger.debug(
                    "Behavior succeeded",
                    extra={"behavior_id": behavior.id, "behavior_type": behavior.type},
                )
                continue

            kind = result.error or FailureKind.UNKNOWN
            failed = StepResult(
                behavior_id=behavior.id,
                behavior_type=behavior.type,
                success=False,
                message=result.message,
                data=result.data,
                failure_kind=kind,
            )
            steps.append(failed)
            errors.append(f"{behavior.type}: {result.message}")
            logger.warning(
                "Behavior failed",
                extra={
                    "behavior_id": behavior.id,
                    "behavior_type": behavior.type,
                    "failure_kind": kind.value,
                    "failure_policy": policy.value,
                },
            )

            if policy == FailurePolicy.ROLLBACK:
                success = False
                completed = [s for s in steps if s.success]
                steps.extend(_skipped(b) for b in ordered[index + 1 :])
                logger.warning(
                    "Pipeline halted by rollback policy",
                    extra={"behavior_type": behavior.type, "skipped": len(ordered) - index - 1},
                )
                self._fire_rollback(RollbackEvent(failed, completed, context))
                break

            if zero_tolerance:
                success = False
            if policy == FailurePolicy.NOTIFY:
                self._notify(context, behavior, failed)

        return ExecutionResult(
            success=success,
            steps=steps,
            context=context.snapshot(),
            errors=errors,
            total_count=len(behaviors),
        )

    def _invoke(self, behavior: BehaviorInstance, context: ExecutionContext) -> BehaviorResult:
        impl = self.registry.get(behavior.type)
        try:
            result = impl.execute(context.organization_id, behavior.config, context)
        except Exception as e:
            logger.exception(
                "Behavior raised", extra={"behavior_id": behavior.id, "behavior_type": behavior.type}
            )
            return BehaviorResult.fail(str(e) or type(e).__name__, FailureKind.UNKNOWN)

        if not isinstance(result, BehaviorResult):
            return BehaviorResult.fail(
                f"Behavior returned unexpected result type {type(result).__name__}",
                FailureKind.UNKNOWN,
            )
        if result.data is not None and not isinstance(result.data, Mapping):
            return BehaviorResult.fail(
                f"Behavior returned non-mapping data {type(result.data).__name__}",
                FailureKind.UNKNOWN,
            )
        return result

    def _notify(
        self, context: ExecutionContext, behavior: BehaviorInstance, step: StepResult
    ) -> None:
        if self.notifier is None:
            return
        notification = FailureNotification(
            organization_id=context.organization_id,
            workflow_name=context.workflow_name,
            behavior_id=behavior.id,
            behavior_type=behavior.type,
            message=step.message,
            failure_kind=(step.failure_kind or FailureKind.UNKNOWN).value,
        )
        try:
            self.notifier.notify(notification)
        except Exception:
            logger.exception(
                "Failure notification could not be delivered",
                extra={"behavior_type": behavior.type},
            )

    def _fire_rollback(self, event: RollbackEvent) -> None:
        if self.on_rollback is None:
            return
        try:
            self.on_rollback(event)
        except Exception:
            logger.exception("Rollback hook raised")


def _skipped(behavior: BehaviorInstance) -> StepResult:
    return StepResult(
        behavior_id=behavior.id,
        behavior_type=behavior.type,
        success=False,
        message="Skipped after rollback",
        skipped=True,
    )
