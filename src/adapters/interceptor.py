"""Interceptor de red para clientes `httpx` crudos.

El camino recomendado es `ApiClient` (reintentos incluidos). Este módulo es el
respaldo para código que necesita un `httpx.AsyncClient` directo: se engancha
vía `event_hooks` y garantiza lo mismo que el executor:

- headers JSON por defecto (sin pisar los del caller) y token Bearer;
- reescritura de rutas `/api/...` relativas a la URL absoluta del backend;
- reacción uniforme al 401 (limpiar sesión + callback).

Las rutas de infraestructura del framework (`/_next/`, HMR, ...) pasan intactas.
"""

from __future__ import annotations

import logging

import httpx

from adapters.http_client import DEFAULT_HEADERS, build_async_client
from adapters.token_store import MemoryTokenStore, SessionExpiredHandler, invalidate_session
from core.config import AppSettings
from core.domain.endpoints import resolve_url
from core.interfaces.token_store import TokenStore

logger = logging.getLogger(__name__)

_MARKER = "_atorix_network_interceptor"


class NetworkInterceptor:
    """Hooks de request/response con el comportamiento transversal."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        token_store: TokenStore | None = None,
        on_session_expired: SessionExpiredHandler | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._token_store: TokenStore = token_store if token_store is not None else MemoryTokenStore()
        self._on_session_expired = on_session_expired

    @property
    def token_store(self) -> TokenStore:
        return self._token_store

    def is_passthrough(self, url: httpx.URL) -> bool:
        path = url.path
        return any(path.startswith(prefix) for prefix in self._settings.interceptor_passthrough_prefixes)

    def rewrite_url(self, url: httpx.URL) -> httpx.URL:
        """URL absoluta para una ruta API relativa; cualquier otra se devuelve igual."""

        if url.is_absolute_url:
            return url
        path = url.path
        if not (path == "/api" or path.startswith("/api/")):
            return url

        target = url.raw_path.decode("ascii")
        return httpx.URL(resolve_url(target, self._settings.base_url_for(path)))

    async def on_request(self, request: httpx.Request) -> None:
        if self.is_passthrough(request.url):
            return

        target = self.rewrite_url(request.url)
        if target != request.url:
            logger.debug("Rewriting %s -> %s", request.url, target)
            request.url = target
            request.headers["Host"] = target.netloc.decode("ascii")

        for key, value in DEFAULT_HEADERS.items():
            current = request.headers.get(key)
            if current is None or (key == "Accept" and current == "*/*"):
                request.headers[key] = value

        token = self._token_store.get_token()
        if token and "Authorization" not in request.headers:
            request.headers["Authorization"] = f"Bearer {token}"

    async def on_response(self, response: httpx.Response) -> None:
        if self.is_passthrough(response.request.url):
            return
        if response.is_success:
            return

        logger.info("API error %d from %s", response.status_code, response.request.url)
        if response.status_code == 401:
            invalidate_session(self._token_store, self._on_session_expired, str(response.request.url))


def install_interceptor(
    client: httpx.AsyncClient,
    interceptor: NetworkInterceptor | None = None,
    **kwargs: object,
) -> NetworkInterceptor:
    """Engancha el interceptor en `client` una sola vez.

    Una segunda llamada sobre el mismo cliente no añade hooks: devuelve el
    interceptor ya instalado.
    """

    existing = getattr(client, _MARKER, None)
    if existing is not None:
        logger.debug("Interceptor already installed on %r", client)
        return existing

    interceptor = interceptor or NetworkInterceptor(**kwargs)  # type: ignore[arg-type]
    hooks = client.event_hooks
    client.event_hooks = {
        "request": [*hooks.get("request", []), interceptor.on_request],
        "response": [*hooks.get("response", []), interceptor.on_response],
    }
    setattr(client, _MARKER, interceptor)
    return interceptor


def uninstall_interceptor(client: httpx.AsyncClient) -> None:
    interceptor = getattr(client, _MARKER, None)
    if interceptor is None:
        return
    hooks = client.event_hooks
    client.event_hooks = {
        "request": [h for h in hooks.get("request", []) if h != interceptor.on_request],
        "response": [h for h in hooks.get("response", []) if h != interceptor.on_response],
    }
    delattr(client, _MARKER)


def installed_interceptor(client: httpx.AsyncClient) -> NetworkInterceptor | None:
    return getattr(client, _MARKER, None)


def build_intercepted_client(
    settings: AppSettings | None = None,
    *,
    token_store: TokenStore | None = None,
    on_session_expired: SessionExpiredHandler | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Cliente crudo (sin base_url) con el interceptor ya instalado."""

    settings = settings or AppSettings()
    client = build_async_client(settings, transport=transport)
    install_interceptor(
        client,
        NetworkInterceptor(settings, token_store=token_store, on_session_expired=on_session_expired),
    )
    return client
