"""Error types for the Loopwell domain.

Defines a small hierarchy of exceptions raised by services, repositories and
integrations. Each error carries the HTTP status it maps to; the server
translates them into ``{"detail": ...}`` JSON responses.
"""

from __future__ import annotations


class LoopwellError(Exception):
    """Base error for all Loopwell domain exceptions."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(LoopwellError):
    """Raised when the caller's identity cannot be established."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class AccessDeniedError(LoopwellError):
    """Raised when the caller lacks the role required for an operation."""

    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFoundError(LoopwellError):
    """Raised when a referenced row does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(f"{resource} {identifier} not found")
        self.resource = resource
        self.identifier = identifier


class ConflictError(LoopwellError):
    """Raised when a unique constraint (slug, key, name) would be violated."""

    status_code = 409


class DomainValidationError(LoopwellError):
    """Raised for request content that is well-formed but semantically invalid."""

    status_code = 400


class ModelNotFoundError(LoopwellError):
    """Raised for model identifiers outside the model catalog."""

    status_code = 400

    def __init__(self, model_id: str) -> None:
        super().__init__(f"Model {model_id} not found")
        self.model_id = model_id


class ProviderNotConfiguredError(LoopwellError):
    """Raised when an LLM provider has no API key configured."""

    status_code = 503

    def __init__(self, provider: str) -> None:
        super().__init__(f"AI provider '{provider}' is not configured")
        self.provider = provider


class ImportSourceError(LoopwellError):
    """Raised when a third-party content source cannot be read."""

    status_code = 502

    def __init__(self, platform: str, message: str) -> None:
        super().__init__(f"{platform} import failed: {message}")
        self.platform = platform
