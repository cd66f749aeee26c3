"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Las respuestas del backend llegan como JSON heterogéneo; aquí se normalizan.

Nota:
- Estos modelos describen *qué* viaja por la capa de acceso a la API, no *cómo*
  se envía (eso vive en `adapters.http_client`).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field
from pydantic.config import ConfigDict

from core.domain.errors import ApiErrorKind


class CredentialsMode(str, Enum):
    """Si la petición viaja con el cookie jar de la sesión."""

    OMIT = "omit"
    INCLUDE = "include"


class RequestDescriptor(BaseModel):
    """Un intento concreto de petición HTTP.

    Por qué inmutable:
    - Cada reintento construye un descriptor nuevo para la misma petición
      lógica; así un token renovado entre intentos se refleja sin mutar estado.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    url: str = Field(..., min_length=1, description="URL absoluta ya resuelta.")
    method: str = Field(default="GET", description="Verbo HTTP en mayúsculas.")
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = Field(default=None, description="Cuerpo JSON serializado.")
    credentials: CredentialsMode = Field(default=CredentialsMode.INCLUDE)
    form: dict[str, str] | None = Field(default=None, description="Campos multipart.")
    files: dict[str, Any] | None = Field(default=None, repr=False, description="Ficheros multipart.")

    @property
    def is_multipart(self) -> bool:
        return bool(self.files)


class ResponseEnvelope(BaseModel):
    """Respuesta normalizada de un intento exitoso."""

    status: int
    ok: bool
    data: Any = Field(default_factory=dict, description="JSON parseado o {} si no hay cuerpo válido.")
    raw_text: str | None = Field(default=None, repr=False)


class AuthUser(BaseModel):
    """Perfil de usuario devuelto por el login del backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    role: str | None = None
    name: str | None = None
    email: str | None = None


class AuthSession(BaseModel):
    """Credencial vigente: como mucho una por sesión."""

    token: str = Field(..., min_length=1)
    user: AuthUser | None = None


class LoginResult(BaseModel):
    success: bool
    token: str | None = None
    user: AuthUser | None = None
    message: str | None = None


class RetryPolicy(BaseModel):
    """Política de reintentos (valor, no estado).

    El backoff es lineal para red/5xx/timeout y fijo para 429, sin jitter: las
    peticiones son interactivas y de bajo volumen.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    rate_limit_delay_ms: int = Field(default=5000, ge=0)

    def delay_ms_for(self, kind: ApiErrorKind, attempt: int) -> int:
        """Retardo antes del siguiente intento tras fallar el intento `attempt` (1-based)."""

        if kind is ApiErrorKind.RATE_LIMITED:
            return self.rate_limit_delay_ms
        return self.base_delay_ms * attempt
