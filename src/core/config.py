"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/interceptor/token store) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import RetryPolicy


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "atorix-admin"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "atorix-admin"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "atorix-admin"
    return Path.home() / ".config" / "atorix-admin"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        try:
            existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))
        except OSError:
            existing = {}

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# atorix-admin user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central del cliente.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="ATORIX_",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_base_url: str = Field(
        default="http://localhost:5001",
        min_length=1,
        validation_alias=AliasChoices("ATORIX_API_BASE_URL", "NEXT_PUBLIC_API_BASE_URL", "api_base_url"),
        description="Base URL del backend REST; todos los endpoints relativos se resuelven contra ella.",
    )
    app_base_url: str = Field(
        default="http://localhost:3000",
        min_length=1,
        description="Origen del dashboard (rutas same-origin como /api/auth/logout).",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por intento (segundos).",
    )
    user_agent: str = Field(
        default="atorix-admin/0.1",
        min_length=1,
        description="User-Agent para las peticiones al backend.",
    )

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Intentos totales por petición lógica (1 = sin reintentos).",
    )
    retry_base_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Retardo base del backoff lineal para fallos de red/5xx.",
    )
    rate_limit_delay_ms: int = Field(
        default=5000,
        ge=0,
        description="Retardo fijo tras un 429.",
    )

    session_file: Path | None = Field(
        default=None,
        description="Fichero de sesión de la CLI (por defecto en el directorio de config del usuario).",
    )
    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )

    interceptor_passthrough_prefixes: tuple[str, ...] = Field(
        default=("/_next/", "/__nextjs", "/_webpack", "/favicon.ico"),
        description="Rutas de infraestructura que el interceptor nunca reescribe.",
    )
    same_origin_prefixes: tuple[str, ...] = Field(
        default=("/api/auth/",),
        description="Rutas /api servidas por el propio dashboard (no por el backend).",
    )

    def base_url_for(self, path: str) -> str:
        """Origen que sirve `path`: el dashboard para rutas same-origin, si no el backend."""

        normalized = "/" + path.lstrip("/")
        if any(normalized.startswith(prefix) for prefix in self.same_origin_prefixes):
            return self.app_base_url
        return self.api_base_url

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_ms=self.retry_base_delay_ms,
            rate_limit_delay_ms=self.rate_limit_delay_ms,
        )

    def resolved_session_file(self) -> Path:
        return self.session_file or (get_user_config_dir() / "session.json")
