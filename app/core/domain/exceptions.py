from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""
    pass


class InvalidLogEntryError(DomainException):
    """Raised when a log entry is blank or exceeds the configured length"""
    pass


class EmbeddingUnavailableError(DomainException):
    """Raised when the embedding provider is unreachable, times out or returns garbage"""
    pass


class DimensionMismatchError(DomainException):
    """Raised when a vector does not have the configured dimensionality"""
    def __init__(self, expected: int, actual: int, source: Optional[str] = None):
        message = f"Expected {expected} dimensions, got {actual}"
        if source:
            message += f" ({source})"
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class IndexUnavailableError(DomainException):
    """Raised when the vector store is unreachable or times out"""
    pass


class CollectionConfigMismatchError(DomainException):
    """Raised when an existing collection was created with a different configuration"""
    def __init__(self, collection_name: str, expected: dict, actual: dict):
        super().__init__(
            f"Collection '{collection_name}' exists with configuration {actual}, expected {expected}"
        )
        self.collection_name = collection_name
        self.expected = expected
        self.actual = actual


class UninitializedBaselineError(DomainException):
    """Raised when scoring is requested before the baseline has been populated"""
    pass
