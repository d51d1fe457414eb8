"""Custom exceptions for the SupportBot application."""


class SupportBotException(Exception):
    """Base exception for SupportBot application."""
    
    pass


class ConfigurationError(SupportBotException):
    """Raised when configuration is invalid."""
    
    pass


class AuthenticationError(SupportBotException):
    """Raised when a bearer credential cannot be verified."""
    
    pass


class ProviderUnavailable(SupportBotException):
    """Raised when a provider has no credential or backing service configured."""
    
    pass


class ProviderError(SupportBotException):
    """Raised when a remote provider call fails or times out."""
    
    pass


class EmptyResult(ProviderError):
    """Raised when the embedding provider returns no vector data."""
    
    pass


class EmptyResponse(ProviderError):
    """Raised when the generation provider returns blank text."""
    
    pass


class DimensionMismatch(SupportBotException):
    """Raised when two vectors of different length are compared."""
    
    pass


class ZeroVector(SupportBotException):
    """Raised when a zero-norm vector is used for similarity scoring."""
    
    pass


class KnowledgeStoreError(SupportBotException):
    """Raised when a knowledge store operation fails."""
    
    pass


class InvalidMessage(SupportBotException):
    """Raised when a chat message fails validation."""
    
    pass
