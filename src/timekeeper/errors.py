"""Errores del sincronizador de registros diarios."""

from __future__ import annotations


class TimekeeperError(Exception):
    """Base error for every failure surfaced to the user."""


class ValidationError(TimekeeperError):
    """Form input rejected locally; no request is sent."""


class NetworkError(TimekeeperError):
    """The request could not be sent or no response arrived."""


class ServerError(TimekeeperError):
    """The store answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResponseFormatError(ServerError):
    """The store answered 2xx but the body is not what we expect."""
