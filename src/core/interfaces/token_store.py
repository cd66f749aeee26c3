"""Contrato del almacén de credenciales.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite cambiar el almacenamiento (memoria, fichero de sesión de la CLI)
  y usar un fake en tests sin tocar estado global.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.models import AuthUser


@runtime_checkable
class TokenStore(Protocol):
    """Contrato mínimo para guardar la sesión autenticada.

    Reglas de diseño:
    - Como mucho una sesión a la vez; `set_token` reemplaza la anterior de una vez.
    - No se decodifica ni valida expiración: el 401 del servidor es la única
      fuente de verdad.
    """

    def get_token(self) -> str | None:
        ...

    def set_token(self, token: str, user: AuthUser | dict[str, Any] | None = None) -> None:
        ...

    def get_current_user(self) -> AuthUser | None:
        """Usuario guardado, o None si falta o no se puede parsear. Nunca lanza."""

        ...

    def is_authenticated(self) -> bool:
        ...

    def clear(self) -> None:
        """Elimina token y usuario. Idempotente."""

        ...
