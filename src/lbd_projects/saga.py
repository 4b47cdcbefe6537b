"""
Compensating write sequences across independent stores.

Provides:
- SagaStep: a forward action paired with the action that reverses it
- Saga: runs steps strictly in order and, on the first failure, runs the
  compensations of every completed step in reverse order
- CancellationToken: cooperative cancellation checked between steps

There is no two-phase commit and no durable log: compensation is best
effort and happens synchronously inside the failing call. Irreversible
steps (e.g. dropping a repository) must be declared last.

Usage:
    saga = Saga("create-project")
    saga.add_step("create-repository", graphs.create_repository, ("t", pid),
                  compensation=graphs.delete_repository, compensation_args=(pid,),
                  collaborator="graph store")
    saga.add_step("create-project-record", docs.create_project_record, (url, pid),
                  compensation=docs.delete_project_record, compensation_args=(pid,),
                  collaborator="document store")
    results = saga.execute()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import IntEnum, auto
from threading import Event
from typing import Any, Callable, Dict, List, Optional

from lbd_projects.errors import (
    CompensationFailure,
    SagaCancelled,
    SagaCompensationFailed,
    SagaFailed,
    StoreWriteFailed,
)

logger = logging.getLogger(__name__)


class StepStatus(IntEnum):
    """Saga step lifecycle states."""
    PENDING = auto()      # Not started
    DONE = auto()         # Action completed
    FAILED = auto()       # Action raised (or saga cancelled before it)
    COMPENSATED = auto()  # Completed, then reversed


class CancellationToken:
    """Token for cooperative saga cancellation."""

    def __init__(self):
        self._cancelled = Event()

    def cancel(self):
        """Request cancellation."""
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()


@dataclass
class SagaStep:
    """One forward write and its compensation."""
    name: str
    action: Callable[..., Any]
    args: tuple = ()
    compensation: Optional[Callable[..., Any]] = None
    compensation_args: tuple = ()
    collaborator: str = "store"
    status: StepStatus = StepStatus.PENDING
    result: Any = None
    error: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "collaborator": self.collaborator,
            "status": self.status.name,
            "reversible": self.compensation is not None,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class SagaStats:
    """Timing of one saga run."""
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    compensations_run: int = 0
    compensations_failed: int = 0

    @property
    def duration_ms(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time or time.time()
        return (end - self.start_time) * 1000


class Saga:
    """
    An ordered sequence of cross-store writes with compensating rollback.

    The saga is generic: it never looks at what an action does. A saga
    instance runs once.
    """

    def __init__(
        self,
        name: str,
        timeout_seconds: Optional[float] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ):
        """
        Args:
            name: Used in log messages and errors
            timeout_seconds: Deadline for the whole sequence; checked before
                each step. Expiry is handled like a failure of the next step.
            cancellation_token: Checked before each step, same handling.
        """
        self.name = name
        self.timeout_seconds = timeout_seconds
        self.cancellation_token = cancellation_token
        self.stats = SagaStats()
        self._steps: List[SagaStep] = []
        self._executed = False

    @property
    def steps(self) -> List[SagaStep]:
        return list(self._steps)

    def add_step(
        self,
        name: str,
        action: Callable[..., Any],
        args: tuple = (),
        compensation: Optional[Callable[..., Any]] = None,
        compensation_args: tuple = (),
        collaborator: str = "store",
    ) -> "Saga":
        """
        Declare the next step.

        Steps without a compensation are irreversible. Every step declared
        after an irreversible one would leave it un-undoable on failure, so
        that ordering is rejected.
        """
        if self._executed:
            raise RuntimeError(f"Saga '{self.name}' already executed")
        if self._steps and self._steps[-1].compensation is None:
            raise ValueError(
                f"Step '{name}' declared after irreversible step "
                f"'{self._steps[-1].name}'; irreversible steps must come last"
            )
        self._steps.append(SagaStep(
            name=name,
            action=action,
            args=tuple(args),
            compensation=compensation,
            compensation_args=tuple(compensation_args),
            collaborator=collaborator,
        ))
        return self

    def _check_continue(self, step: SagaStep) -> None:
        if self.cancellation_token and self.cancellation_token.is_cancelled():
            raise SagaCancelled(f"Saga '{self.name}' cancelled before step '{step.name}'")
        if self.timeout_seconds is not None and self.stats.start_time is not None:
            elapsed = time.time() - self.stats.start_time
            if elapsed > self.timeout_seconds:
                raise SagaCancelled(
                    f"Saga '{self.name}' exceeded its {self.timeout_seconds}s deadline "
                    f"before step '{step.name}'"
                )

    def execute(self) -> List[Any]:
        """
        Run every step in declaration order.

        Returns:
            The result of each action, in order

        Raises:
            SagaFailed: A step failed and every compensation succeeded
            SagaCompensationFailed: A step failed and one or more
                compensations failed as well
        """
        if self._executed:
            raise RuntimeError(f"Saga '{self.name}' already executed")
        self._executed = True
        self.stats.start_time = time.time()

        try:
            for step in self._steps:
                try:
                    self._check_continue(step)
                    step.result = step.action(*step.args)
                except SagaCancelled as e:
                    step.status = StepStatus.FAILED
                    step.error = e
                    self._fail(step, e)
                except Exception as e:
                    step.status = StepStatus.FAILED
                    step.error = e
                    self._fail(step, StoreWriteFailed(step.name, step.collaborator, e))
                step.status = StepStatus.DONE
                logger.debug(f"Saga '{self.name}': step '{step.name}' done")
        finally:
            self.stats.end_time = time.time()

        logger.info(
            f"Saga '{self.name}' completed {len(self._steps)} step(s) "
            f"in {self.stats.duration_ms:.1f}ms"
        )
        return [step.result for step in self._steps]

    def _fail(self, failed: SagaStep, cause: BaseException) -> None:
        logger.warning(f"Saga '{self.name}': step '{failed.name}' failed: {cause}")
        failures = self.compensate()
        error_cls = SagaCompensationFailed if failures else SagaFailed
        raise error_cls(failed.name, cause, failures) from cause

    def compensate(self) -> List[CompensationFailure]:
        """
        Reverse every completed step, last first.

        A failing compensation does not stop the remaining ones.

        Returns:
            One entry per compensation that raised
        """
        failures: List[CompensationFailure] = []
        for step in reversed(self._steps):
            if step.status != StepStatus.DONE or step.compensation is None:
                continue
            self.stats.compensations_run += 1
            try:
                step.compensation(*step.compensation_args)
                step.status = StepStatus.COMPENSATED
                logger.warning(f"Saga '{self.name}': compensated step '{step.name}'")
            except Exception as e:
                self.stats.compensations_failed += 1
                failures.append(CompensationFailure(step.name, e))
                logger.error(f"Saga '{self.name}': compensation of '{step.name}' failed: {e}")
        return failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "steps": [s.to_dict() for s in self._steps],
            "duration_ms": self.stats.duration_ms,
            "compensations_run": self.stats.compensations_run,
            "compensations_failed": self.stats.compensations_failed,
        }
