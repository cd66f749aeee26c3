"""Registro de endpoints y resolución de URLs."""

from __future__ import annotations

import re
from enum import Enum

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")


class Endpoint(str, Enum):
    """Rutas relativas conocidas del backend (tabla pura, sin comportamiento)."""

    LOGIN = "/api/admin/login"
    BUSINESS_LEADS = "/api/business-leads"
    JOB_APPLICATIONS = "/api/job-applications"
    CONTACT = "/api/submit"
    DEMO_REQUESTS = "/api/demo-requests"
    DEMO_REQUESTS_COUNT = "/api/demo-requests/count"
    SUBMISSIONS = "/api/submissions"
    SUBMISSIONS_BULK_DELETE = "/api/submissions/bulk-delete"
    USERS = "/api/users"
    PING = "/api/ping"
    # Servido por el propio dashboard (same-origin), no por el backend.
    LOGOUT = "/api/auth/logout"

    @classmethod
    def lookup(cls, name: str) -> "Endpoint | None":
        """Busca por nombre simbólico (`business_leads`, `BUSINESS-LEADS`...)."""

        key = name.strip().upper().replace("-", "_")
        return cls.__members__.get(key)


def is_absolute_url(value: str) -> bool:
    return bool(_SCHEME_RE.match(value))


def resolve_url(endpoint_or_url: str | Endpoint, base_url: str) -> str:
    """Convierte un endpoint relativo en URL absoluta contra `base_url`.

    - URLs absolutas se devuelven tal cual (idempotente).
    - Se eliminan las barras iniciales del endpoint y la final de la base, y se
      unen con una sola barra.
    - No se normalizan query strings ni encoding: los segmentos deben llegar
      ya codificados.
    """

    value = endpoint_or_url.value if isinstance(endpoint_or_url, Endpoint) else endpoint_or_url
    if is_absolute_url(value):
        return value

    clean_endpoint = value.lstrip("/")
    clean_base = base_url[:-1] if base_url.endswith("/") else base_url
    return f"{clean_base}/{clean_endpoint}"
