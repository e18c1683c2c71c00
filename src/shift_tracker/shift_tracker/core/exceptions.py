class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ActiveSessionConflict(ValidationError):
    """Raised when a worker already holds an open shift session."""


class NotFound(DomainError):
    """Raised when the targeted session does not exist or is not open."""


class InvalidState(DomainError):
    """Raised when an operation is not legal in the current lifecycle state."""


class InvariantViolation(DomainError):
    """Raised when stored data breaks a core invariant (upstream corruption)."""


class AuthenticationError(DomainError):
    """Raised when no worker is signed in."""


class AuthorizationError(DomainError):
    """Raised when a worker lacks permission for an action."""


class StorageFailure(DomainError):
    """Raised when a backing store is unreachable or erroring."""


class RecordStoreError(StorageFailure):
    """Record store failure."""


class EvidenceUploadError(StorageFailure):
    """Evidence store failure (photo upload)."""
