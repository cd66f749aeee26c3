"""Taxonomía de errores de la capa de acceso a la API.

Por qué un único tipo:
- Los callers (CLI, servicios) ramifican sobre `ApiError.kind` con `match`
  en lugar de inspeccionar atributos ad hoc.
- Las excepciones de transporte (httpx/asyncio) nunca salen del executor: se
  envuelven y quedan en `cause`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
NETWORK_MESSAGE = "Unable to connect to the server. Please check your internet connection."
TIMEOUT_MESSAGE = "The server took too long to respond. Please check your internet connection."
SERVER_ERROR_MESSAGE = "The server encountered an error. Please try again later."
NOT_FOUND_MESSAGE = "The requested resource was not found."
FORBIDDEN_MESSAGE = "You do not have permission to access this resource."


class ApiErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    RATE_LIMITED = "rate_limited"
    PARSE_ERROR = "parse_error"


RETRYABLE_KINDS = frozenset(
    {
        ApiErrorKind.NETWORK,
        ApiErrorKind.TIMEOUT,
        ApiErrorKind.SERVER_ERROR,
        ApiErrorKind.RATE_LIMITED,
    }
)


def kind_for_status(status: int) -> ApiErrorKind:
    """Clasifica un status no-OK."""

    if status == 429:
        return ApiErrorKind.RATE_LIMITED
    if status >= 500:
        return ApiErrorKind.SERVER_ERROR
    return ApiErrorKind.CLIENT_ERROR


class ApiError(Exception):
    """Fallo tipado de una petición lógica."""

    def __init__(
        self,
        kind: ApiErrorKind,
        message: str,
        *,
        status: int | None = None,
        endpoint: str = "",
        cause: BaseException | None = None,
        data: Any = None,
        original_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.endpoint = endpoint
        self.cause = cause
        self.data = data
        self.original_message = original_message

    def __repr__(self) -> str:
        return (
            f"ApiError(kind={self.kind.value!r}, status={self.status!r}, "
            f"endpoint={self.endpoint!r}, message={self.message!r})"
        )

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def session_expired(self) -> bool:
        return self.status == 401

    def user_facing(self) -> "ApiError":
        """Copia con el mensaje reescrito para mostrar al usuario.

        Se aplica una sola vez, en el borde, cuando el fallo ya es terminal.
        """

        message = _user_message(self)
        if message is None:
            return self
        return ApiError(
            self.kind,
            message,
            status=self.status,
            endpoint=self.endpoint,
            cause=self.cause,
            data=self.data,
            original_message=self.message,
        )


def _user_message(error: ApiError) -> str | None:
    if error.session_expired:
        return None
    if error.kind is ApiErrorKind.NETWORK:
        return NETWORK_MESSAGE
    if error.kind is ApiErrorKind.TIMEOUT:
        return TIMEOUT_MESSAGE
    if error.kind is ApiErrorKind.SERVER_ERROR:
        return SERVER_ERROR_MESSAGE
    if error.status == 404:
        return NOT_FOUND_MESSAGE
    if error.status == 403:
        return FORBIDDEN_MESSAGE
    return None
