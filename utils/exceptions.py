"""
Custom Exception Classes for Meme Studio

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""


class MemeStudioError(Exception):
    """Base exception for all Meme Studio application errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.__class__.__name__


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(MemeStudioError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Request / Precondition Errors
# =============================================================================

class PreconditionError(MemeStudioError):
    """Base exception for request preconditions that are not met."""
    pass


class InvalidRequestError(PreconditionError):
    """Raised when a request is missing required input."""
    pass


class MissingTopicError(PreconditionError):
    """Raised when generation is requested without a topic."""

    def __init__(self, message: str = "Topic is required"):
        super().__init__(message)


class NoAnalyzedContentError(PreconditionError):
    """Raised when an operation needs analyzed memes and none exist."""

    def __init__(self, message: str = "No analyzed memes found. Analyze some memes first."):
        super().__init__(message)


class NoImagesAvailableError(PreconditionError):
    """Raised when image-first generation finds no image-bearing memes."""

    def __init__(self, message: str = "No images in collection. Save some memes with images first!"):
        super().__init__(message)


class NoSuitableImagesError(PreconditionError):
    """Raised when image selection yields no usable images."""

    def __init__(self, message: str = "Could not find suitable images for this topic"):
        super().__init__(message)


# =============================================================================
# AI Service Errors
# =============================================================================

class AIServiceError(MemeStudioError):
    """Base exception for AI service errors."""
    pass


class ModelCallFailedError(AIServiceError):
    """Raised when a language model call fails or returns an unusable payload."""
    pass


# =============================================================================
# Database Errors
# =============================================================================

class DatabaseError(MemeStudioError):
    """Base exception for database-related errors."""
    pass


class StoreUnavailableError(DatabaseError):
    """Raised when the corpus store cannot be read from or written to."""
    pass


class PersistencePartialFailure(DatabaseError):
    """
    A single record failed to save during best-effort persistence.

    Instances are collected and reported alongside a successful result;
    they are never raised out of the service that records them.
    """

    def __init__(self, message: str, item_index: int = -1, cause: Exception = None):
        super().__init__(message)
        self.item_index = item_index
        self.cause = cause

    def to_dict(self) -> dict:
        return {"index": self.item_index, "error": self.message}
