"""Application exceptions.

Domain errors raised by the measurement pipeline, plus thin HTTPException
subclasses used by the API layer.
"""

from fastapi import HTTPException, status


# ---------------------------------------------------------------------------
# Measurement pipeline
# ---------------------------------------------------------------------------


class ConfigurationError(Exception):
    """Missing API key or workspace field. Never retried."""


class ProviderError(Exception):
    """A provider call failed: non-2xx response or transport failure (status 0)."""

    def __init__(self, provider: str, status_code: int = 0, body: str = ""):
        self.provider = provider
        self.status_code = status_code
        self.body = body
        super().__init__(f"{provider} API error {status_code}: {body}")


class EmptyResponseError(ProviderError):
    """Provider answered 2xx without any content."""

    def __init__(self, provider: str, status_code: int = 200):
        super().__init__(provider, status_code, "empty response")


class SamplingError(Exception):
    """Every sample of a KPI calculation failed."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Failed to get any successful responses. Errors: " + "; ".join(errors))


class PersistenceError(Exception):
    """Repository write or read failed."""


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
