"""Flujo de autenticación del dashboard.

Responsabilidad:
- Validar credenciales contra `POST /api/admin/login` y guardar la sesión.
- Cerrar sesión: avisar al dashboard (cookie) y limpiar siempre el token local.

El token nunca se renueva en silencio: un 401 en cualquier petición invalida la
sesión (ver `adapters.token_store.invalidate_session`).
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from adapters.http_client import ApiClient
from core.domain.endpoints import Endpoint
from core.domain.errors import ApiError
from core.domain.models import AuthUser, LoginResult
from core.interfaces.token_store import TokenStore

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


def _parse_user(raw: Any) -> AuthUser | None:
    if not isinstance(raw, dict):
        return None
    try:
        return AuthUser.model_validate(raw)
    except ValidationError:
        return None


class AuthService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    @property
    def token_store(self) -> TokenStore:
        return self._client.token_store

    async def validate_credentials(self, username: str, password: str) -> LoginResult:
        """Llama al login del backend; nunca lanza."""

        try:
            response = await self._client.post(
                Endpoint.LOGIN,
                {"username": username, "password": password},
            )
        except ApiError as exc:
            logger.info("Authentication failed for %s: %s", username, exc.message)
            if exc.session_expired:
                return LoginResult(success=False, message=INVALID_CREDENTIALS_MESSAGE)
            return LoginResult(success=False, message=exc.message or "Authentication failed. Please try again.")

        if not isinstance(response, dict):
            return LoginResult(success=False, message=INVALID_CREDENTIALS_MESSAGE)

        token = response.get("token")
        return LoginResult(
            success=bool(response.get("success")),
            token=token if isinstance(token, str) else None,
            user=_parse_user(response.get("user")),
            message=response.get("message") if isinstance(response.get("message"), str) else None,
        )

    async def login(self, username: str, password: str) -> LoginResult:
        result = await self.validate_credentials(username, password)

        if result.success and result.token:
            self.token_store.set_token(result.token, result.user)
            return LoginResult(success=True, token=result.token, user=result.user)

        return LoginResult(success=False, message=result.message or INVALID_CREDENTIALS_MESSAGE)

    async def logout(self) -> None:
        """Cierra sesión en el dashboard; la limpieza local ocurre siempre."""

        try:
            await self._client.request(Endpoint.LOGOUT, method="POST", retries=0)
        except ApiError as exc:
            logger.warning("Logout API error: %s", exc.message)
        finally:
            self.token_store.clear()

    def is_authenticated(self) -> bool:
        return self.token_store.is_authenticated()

    def current_user(self) -> AuthUser | None:
        return self.token_store.get_current_user()
