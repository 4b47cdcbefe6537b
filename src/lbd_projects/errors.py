"""
Error taxonomy for project lifecycle operations.

Every public operation either returns a payload or raises exactly one
LifecycleError. Each error carries a machine-checkable ``kind`` and keeps
the original cause so the full chain can be shown to the caller.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class LifecycleError(Exception):
    """Base class for all lifecycle failures."""

    kind = "LifecycleError"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}; {self.cause}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "cause": str(self.cause) if self.cause is not None else None,
        }


class Unauthenticated(LifecycleError):
    """Raised when an operation is attempted without a resolved principal."""

    kind = "Unauthenticated"


class ValidationError(LifecycleError):
    """Raised when a request is missing a required field."""

    kind = "ValidationError"


class AclNotFound(LifecycleError):
    """Raised when a referenced ACL graph does not exist."""

    kind = "AclNotFound"

    def __init__(self, acl_url: str, cause: Optional[BaseException] = None):
        self.acl_url = acl_url
        super().__init__(
            f"The ACL graph {acl_url} does not exist. Upload a custom ACL "
            "or refer to an existing one",
            cause,
        )


class InvalidQueryClass(LifecycleError):
    """Raised when a mutating query arrives on the read channel."""

    kind = "InvalidQueryClass"


class GraphNotFound(LifecycleError):
    """Raised when a named graph is empty or absent."""

    kind = "GraphNotFound"

    def __init__(self, context: str, cause: Optional[BaseException] = None):
        self.context = context
        super().__init__(f"Graph not found: {context}", cause)


class StoreWriteFailed(LifecycleError):
    """Wraps a collaborator failure with the step that triggered it."""

    kind = "StoreWriteFailed"

    def __init__(self, step: str, collaborator: str, cause: BaseException):
        self.step = step
        self.collaborator = collaborator
        super().__init__(f"Step '{step}' failed in {collaborator}", cause)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["step"] = self.step
        data["collaborator"] = self.collaborator
        return data


class StoreReadFailed(LifecycleError):
    """Wraps a collaborator failure on the read side (queries, listings)."""

    kind = "StoreReadFailed"

    def __init__(self, operation: str, collaborator: str, cause: BaseException):
        self.operation = operation
        self.collaborator = collaborator
        super().__init__(f"Operation '{operation}' failed in {collaborator}", cause)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["operation"] = self.operation
        data["collaborator"] = self.collaborator
        return data


class SagaFailed(LifecycleError):
    """
    Composite saga failure.

    Carries the failing step, the original cause and the outcome of the
    compensations that were attempted afterwards. ``compensation_failures``
    is empty when every compensation succeeded.
    """

    kind = "SagaFailed"

    def __init__(
        self,
        step: str,
        cause: BaseException,
        compensation_failures: Optional[List["CompensationFailure"]] = None,
        message: Optional[str] = None,
    ):
        self.step = step
        self.compensation_failures = list(compensation_failures or [])
        super().__init__(message or f"Step '{step}' failed", cause)

    @property
    def compensated(self) -> bool:
        """True if every compensation that ran succeeded."""
        return not self.compensation_failures

    @property
    def cleanup_outcome(self) -> str:
        if self.compensated:
            return "SUCCESS"
        return "; ".join(str(f) for f in self.compensation_failures)

    def __str__(self) -> str:
        return (
            f"{self.message}; {self.cause}. "
            f"Undoing past operations: {self.cleanup_outcome}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["step"] = self.step
        data["cleanup_outcome"] = self.cleanup_outcome
        data["compensation_failures"] = [f.to_dict() for f in self.compensation_failures]
        return data


class SagaCompensationFailed(SagaFailed):
    """A saga step failed and at least one compensation failed too."""

    kind = "SagaCompensationFailed"


class SagaCancelled(LifecycleError):
    """A saga was cancelled or ran past its deadline before a step started."""

    kind = "SagaCancelled"


class CompensationFailure:
    """A single compensation that raised while undoing a saga."""

    def __init__(self, step: str, error: BaseException):
        self.step = step
        self.error = error

    def __str__(self) -> str:
        return f"{self.step}: {self.error}"

    def __repr__(self) -> str:
        return f"CompensationFailure(step={self.step!r}, error={self.error!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "error": str(self.error)}


class ProjectCreationFailed(SagaFailed):
    """Raised when any step of project creation fails."""

    kind = "ProjectCreationFailed"

    @classmethod
    def from_saga(cls, error: SagaFailed) -> "ProjectCreationFailed":
        return cls(
            error.step,
            error.cause,
            error.compensation_failures,
            message="Failed to create project",
        )


class ProjectDeletionFailed(SagaFailed):
    """Raised when any step of project deletion fails."""

    kind = "ProjectDeletionFailed"

    @classmethod
    def from_saga(cls, error: SagaFailed, project_id: str) -> "ProjectDeletionFailed":
        return cls(
            error.step,
            error.cause,
            error.compensation_failures,
            message=f"Failed to delete project with id {project_id}",
        )


class PartialFailure(LifecycleError):
    """
    A resource write succeeded but its companion metadata graph was not
    written (or not removed).

    Not rolled back. ``resource`` and ``companion`` name the two contexts
    so an operator can reconcile them.
    """

    kind = "PartialFailure"

    def __init__(
        self,
        resource: str,
        companion: str,
        cause: BaseException,
        message: Optional[str] = None,
    ):
        self.resource = resource
        self.companion = companion
        super().__init__(
            message or f"Created {resource} but could not create its metadata graph {companion}",
            cause,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["resource"] = self.resource
        data["companion"] = self.companion
        return data
