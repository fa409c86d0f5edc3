"""Exceptions raised by the migration pipeline."""

from typing import Any


class TransportError(Exception):
    """Exception raised for Graph API and connection errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.response = response


class ValidationError(Exception):
    """Exception raised for malformed or empty policy payloads."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
