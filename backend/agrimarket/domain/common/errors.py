"""Domain error types."""
from typing import Optional


class DomainError(Exception):
    """Base domain error."""

    kind = "domain_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        """Structured form for the calling boundary."""
        return {"kind": self.kind, "message": self.message}


class NotFoundError(DomainError):
    """Resource not found."""

    kind = "not_found"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id {identifier} not found")


class ValidationError(DomainError):
    """Malformed or out-of-range input."""

    kind = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class AuthorizationError(DomainError):
    """Actor lacks ownership or role for the operation."""

    kind = "forbidden"

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class InvalidStateError(DomainError):
    """Operation not valid for the record's current status."""

    kind = "invalid_state"


class ConflictError(DomainError):
    """Concurrent modification could not be reconciled."""

    kind = "conflict"
