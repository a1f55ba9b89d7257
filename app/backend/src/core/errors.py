"""Error taxonomy shared by the API handlers and the services they call."""

from __future__ import annotations

from fastapi import status


class DashboardError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RequestValidationError(DashboardError):
    """A request body is missing required fields or has the wrong shape."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(DashboardError):
    """The caller has no valid token or supplied the wrong shared secret."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthConfigurationError(DashboardError):
    """JWT signing is not configured on the server."""


class ProviderConfigurationError(DashboardError):
    """The LLM provider cannot be reached because configuration is missing."""


class ProviderError(DashboardError):
    """The LLM provider rejected a call or the transport failed."""


class UnsupportedFileTypeError(DashboardError):
    """An uploaded file is neither a PDF nor an image."""


class RepositoryError(DashboardError):
    """GitHub could not list or serve a repository."""


class ModelParseError(DashboardError):
    """Markdown content is not a valid data model definition."""

    status_code = status.HTTP_400_BAD_REQUEST


class SchemaGenerationError(DashboardError):
    """A JSON Schema could not be produced for the requested root object."""

    status_code = status.HTTP_400_BAD_REQUEST


__all__ = [
    "AuthConfigurationError",
    "AuthenticationError",
    "DashboardError",
    "ModelParseError",
    "ProviderConfigurationError",
    "ProviderError",
    "RepositoryError",
    "RequestValidationError",
    "SchemaGenerationError",
    "UnsupportedFileTypeError",
]
