"""
Custom exceptions for the LLM client layer.

These exceptions let the classifier distinguish failure modes and report a
specific reason on fail-open results. None of them escape the classifier.
"""


class LLMClientError(Exception):
    """
    Base exception for all LLM client errors.

    All LLM-specific exceptions inherit from this to allow catching
    any LLM-related error with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LLMConnectionError(LLMClientError):
    """
    Raised when unable to connect to the completion provider.

    Includes DNS failures, refused connections and dropped connections.
    """
    pass


class LLMTimeoutError(LLMConnectionError):
    """
    Raised when the provider call exceeds the client timeout.

    Separate from generic connection errors so it can be reported as its
    own fail-open reason.
    """
    pass


class LLMGenerationError(LLMClientError):
    """
    Raised when the provider answers with a non-success HTTP status.

    The status code is kept on the exception for logging.
    """
    def __init__(self, message: str, status_code: int | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.status_code = status_code


class LLMResponseFormatError(LLMClientError):
    """Raised when the provider body is not a usable chat-completion response."""
    pass


class LLMCredentialError(LLMClientError):
    """Raised before any outbound call when no API key is configured."""
    pass
