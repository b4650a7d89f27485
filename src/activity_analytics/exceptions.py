"""Unified exception hierarchy for activity-analytics."""


class AnalyticsError(Exception):
    """Base exception for all activity-analytics errors."""


class ConfigurationError(AnalyticsError):
    """Missing or invalid settings."""


class EmptyInputError(AnalyticsError):
    """No visited pages were supplied."""


# Classifier
class ClassificationError(AnalyticsError):
    """Base exception for classifier operations."""


class ClassifierTimeoutError(ClassificationError):
    """The classifier did not answer within the request timeout."""


class ClassifierUnavailableError(ClassificationError):
    """The classifier could not be reached or answered with a server error."""


class ClassifierResponseMalformedError(ClassificationError):
    """The classifier reply could not be repaired into the expected shape."""


# Cache
class CacheError(AnalyticsError):
    """Base exception for cache and persistent store operations."""


class CacheReadError(CacheError):
    """Failed to read a persisted record."""


class CacheWriteError(CacheError):
    """Failed to write a cache entry or persisted record."""


class PersistedDataCorruptError(CacheError):
    """A persisted record could not be deserialized."""
