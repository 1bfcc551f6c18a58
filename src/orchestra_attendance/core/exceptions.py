class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class DataSourceError(DomainError):
    """Raised when the attendance store could not be reached after retries."""
