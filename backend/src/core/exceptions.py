"""
Custom Exception Hierarchy
Domain and application-level exceptions
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for all domain errors"""
    pass


class AuthorizationException(DomainException):
    """User not authorized for this operation"""
    pass


class ValidationException(DomainException):
    """Data validation failed"""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class MissingRequiredFieldException(ValidationException):
    """Caller omitted a mandatory input"""

    def __init__(self, field: str):
        super().__init__(field, "is required")


class RepositoryException(DomainException):
    """Database operation failed"""
    pass


class StoreUnavailableException(RepositoryException):
    """Document store transport or infrastructure failure"""
    pass


class ResourceNotFoundException(DomainException):
    """Requested resource not found"""

    def __init__(self, resource_type: str, identifier: str):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found: {identifier}")


class DuplicateResourceException(DomainException):
    """Resource already exists"""

    def __init__(self, resource_type: str, field: str, value: str):
        self.resource_type = resource_type
        self.field = field
        self.value = value
        super().__init__(f"{resource_type} with {field}='{value}' already exists")


class CascadeDeletionException(RepositoryException):
    """
    A step of project deletion failed after earlier steps may have committed.
    Retrying the deletion is safe.
    """

    def __init__(self, project_id: str, step: str, cause: Exception):
        self.project_id = project_id
        self.step = step
        self.cause = cause
        super().__init__(f"Deletion of project {project_id} failed at step '{step}': {cause}")


@dataclass(frozen=True)
class InconsistencyDetected:
    """
    Divergence between denormalized copies, found on read.
    Logged for reconciliation tooling; never raised to end users.
    """
    kind: str
    identifier: str
    details: Dict[str, Any] = field(default_factory=dict)
    repaired: bool = False

    def describe(self) -> str:
        suffix = " (repaired)" if self.repaired else ""
        return f"{self.kind} {self.identifier} {self.details}{suffix}"


def as_store_error(exc: Exception, context: Optional[str] = None) -> StoreUnavailableException:
    """Wrap a driver error so callers only see the domain taxonomy"""
    message = f"{context}: {exc}" if context else str(exc)
    return StoreUnavailableException(message)
