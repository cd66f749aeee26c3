"""Implementaciones de `core.interfaces.token_store.TokenStore`.

- `MemoryTokenStore`: sesión local al proceso (por defecto y en tests).
- `FileTokenStore`: sesión persistida para la CLI entre invocaciones.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from core.domain.models import AuthSession, AuthUser
from core.interfaces.token_store import TokenStore

logger = logging.getLogger(__name__)

SessionExpiredHandler = Callable[[str], None]


def _coerce_user(user: AuthUser | dict[str, Any] | None) -> AuthUser | None:
    if user is None or isinstance(user, AuthUser):
        return user
    try:
        return AuthUser.model_validate(user)
    except ValidationError:
        return None


class MemoryTokenStore:
    """Sesión en memoria; una asignación reemplaza la sesión completa."""

    def __init__(self) -> None:
        self._session: AuthSession | None = None

    def get_token(self) -> str | None:
        session = self._session
        return session.token if session else None

    def set_token(self, token: str, user: AuthUser | dict[str, Any] | None = None) -> None:
        self._session = AuthSession(token=token, user=_coerce_user(user))

    def get_current_user(self) -> AuthUser | None:
        session = self._session
        return session.user if session else None

    def is_authenticated(self) -> bool:
        return bool(self.get_token())

    def clear(self) -> None:
        self._session = None


class FileTokenStore:
    """Sesión guardada como JSON (modo 600) en el directorio de config del usuario.

    El fichero se reescribe vía temporal + `os.replace`, así que un lector nunca
    ve una sesión a medias.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable session file %s", self._path)
            return {}
        return payload if isinstance(payload, dict) else {}

    def get_token(self) -> str | None:
        token = self._read().get("token")
        return token if isinstance(token, str) and token else None

    def set_token(self, token: str, user: AuthUser | dict[str, Any] | None = None) -> None:
        session = AuthSession(token=token, user=_coerce_user(user))
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(session.model_dump(mode="json"), ensure_ascii=False), encoding="utf-8")
        try:
            os.chmod(tmp, 0o600)
        except OSError:  # pragma: no cover - Windows
            pass
        os.replace(tmp, self._path)

    def get_current_user(self) -> AuthUser | None:
        raw = self._read().get("user")
        if not isinstance(raw, dict):
            return None
        try:
            return AuthUser.model_validate(raw)
        except ValidationError:
            return None

    def is_authenticated(self) -> bool:
        return bool(self.get_token())

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


def invalidate_session(
    store: TokenStore,
    on_expired: SessionExpiredHandler | None,
    source: str,
) -> None:
    """Reacción común a un 401: limpiar la sesión y avisar al caller.

    Sin sesión previa (p. ej. un login rechazado) no hay nada que expirar y el
    callback no se llama.
    """

    had_session = store.is_authenticated()
    store.clear()
    if not had_session:
        logger.info("401 from %s without an active session", source)
        return
    logger.warning("Session invalidated after 401 from %s", source)
    if on_expired is not None:
        on_expired(source)
