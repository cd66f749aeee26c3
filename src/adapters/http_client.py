"""Wrapper de httpx: el executor de peticiones al backend.

Por qué un wrapper:
- Estandariza timeouts, headers, token, reintentos y logging en un único punto
  de entrada (`ApiClient.request`).
- Facilita testeo: se inyecta un `httpx.MockTransport` y un `sleep` falso.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Mapping

import httpx

from adapters.token_store import MemoryTokenStore, SessionExpiredHandler, invalidate_session
from core.config import AppSettings
from core.domain.endpoints import Endpoint, is_absolute_url, resolve_url
from core.domain.errors import SESSION_EXPIRED_MESSAGE, ApiError, ApiErrorKind, kind_for_status
from core.domain.models import CredentialsMode, RequestDescriptor, ResponseEnvelope, RetryPolicy
from core.interfaces.token_store import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

Sleep = Callable[[float], Awaitable[Any]]

# Extensión de request que marca `credentials=omit`; httpx la conserva en cada redirect.
OMIT_CREDENTIALS_EXTENSION = "atorix_omit_credentials"


async def strip_omitted_credentials(request: httpx.Request) -> None:
    """Hook de request: quita el cookie jar en todos los saltos de una petición `omit`."""

    if request.extensions.get(OMIT_CREDENTIALS_EXTENSION):
        request.headers.pop("Cookie", None)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que executor e interceptor se comporten igual.
    - `Content-Type` no va a nivel de cliente: rompería el boundary de multipart.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": DEFAULT_HEADERS["Accept"],
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def merge_headers(defaults: Mapping[str, str], overrides: Mapping[str, str] | None) -> dict[str, str]:
    """Une headers; `overrides` gana en conflicto (sin distinguir mayúsculas)."""

    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        for existing in [k for k in merged if k.lower() == key.lower()]:
            del merged[existing]
        merged[key] = value
    return merged


def _parse_json(text: str) -> tuple[Any, bool]:
    if not text.strip():
        return None, False
    try:
        return json.loads(text), True
    except ValueError:
        return None, False


def _server_message(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    for key in ("message", "error"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


class ApiClient:
    """Executor de peticiones con reintentos, backoff y manejo de sesión.

    Se construye una vez al arrancar y se pasa por referencia a quien lo
    necesite; es el único punto de entrada a la red.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        token_store: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        on_session_expired: SessionExpiredHandler | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._token_store: TokenStore = token_store if token_store is not None else MemoryTokenStore()
        self._policy = self._settings.retry_policy()
        self._sleep = sleep
        self._on_session_expired = on_session_expired
        self._owns_client = client is None
        self._client = client or build_async_client(self._settings, transport=transport)
        hooks = self._client.event_hooks
        if strip_omitted_credentials not in hooks.get("request", []):
            self._client.event_hooks = {
                "request": [*hooks.get("request", []), strip_omitted_credentials],
                "response": list(hooks.get("response", [])),
            }

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def token_store(self) -> TokenStore:
        return self._token_store

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def resolve(self, endpoint: str | Endpoint) -> str:
        """URL absoluta; las rutas same-origin (`/api/auth/...`) van al dashboard."""

        value = endpoint.value if isinstance(endpoint, Endpoint) else endpoint
        if is_absolute_url(value):
            return value
        return resolve_url(value, self._settings.base_url_for(value))

    def describe(
        self,
        endpoint: str | Endpoint,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
        form: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        credentials: CredentialsMode = CredentialsMode.INCLUDE,
    ) -> RequestDescriptor:
        """Construye el descriptor de un intento (token leído en este momento)."""

        defaults = dict(DEFAULT_HEADERS)
        if files:
            defaults.pop("Content-Type")
        merged = merge_headers(defaults, headers)

        token = self._token_store.get_token()
        if token:
            merged = merge_headers(merged, {"Authorization": f"Bearer {token}"})

        return RequestDescriptor(
            url=self.resolve(endpoint),
            method=method.upper(),
            headers=merged,
            body=body,
            credentials=credentials,
            form=form,
            files=files,
        )

    async def request(self, endpoint: str | Endpoint, **options: Any) -> Any:
        """Ejecuta una petición lógica y devuelve el JSON parseado.

        Lanza `ApiError` en cualquier fallo terminal.
        """

        envelope = await self.request_envelope(endpoint, **options)
        return envelope.data

    async def request_envelope(
        self,
        endpoint: str | Endpoint,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        payload: Any = None,
        body: str | None = None,
        form: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        credentials: CredentialsMode = CredentialsMode.INCLUDE,
    ) -> ResponseEnvelope:
        label = endpoint.value if isinstance(endpoint, Endpoint) else endpoint
        if payload is not None and body is None:
            try:
                body = json.dumps(payload)
            except (TypeError, ValueError) as exc:
                raise ApiError(
                    ApiErrorKind.PARSE_ERROR,
                    f"Request payload is not JSON serializable: {exc}",
                    endpoint=label,
                    cause=exc,
                ) from exc

        max_attempts = self._policy.max_attempts if retries is None else max(0, retries) + 1
        timeout_s = timeout if timeout is not None else self._settings.http_timeout_seconds

        attempt = 0
        while True:
            attempt += 1
            descriptor = self.describe(
                endpoint,
                method=method,
                headers=headers,
                body=body,
                form=form,
                files=files,
                credentials=credentials,
            )
            try:
                return await self._attempt(descriptor, label, timeout_s)
            except ApiError as error:
                remaining = max_attempts - attempt
                if error.retryable and remaining > 0:
                    delay_ms = self._policy.delay_ms_for(error.kind, attempt)
                    logger.warning(
                        "Retrying %s %s in %dms (%s, %d attempts left)",
                        descriptor.method,
                        label,
                        delay_ms,
                        error.kind.value,
                        remaining,
                    )
                    await self._sleep(delay_ms / 1000)
                    continue

                terminal = error.user_facing()
                if terminal is error:
                    raise
                raise terminal from error

    async def _attempt(self, descriptor: RequestDescriptor, label: str, timeout_s: float) -> ResponseEnvelope:
        try:
            request = self._build_request(descriptor, timeout_s)
        except (httpx.InvalidURL, ValueError) as exc:
            # URL mal formada o header no codificable: repetir no lo arregla.
            raise ApiError(
                ApiErrorKind.PARSE_ERROR,
                f"Invalid request: {exc}",
                endpoint=label,
                cause=exc,
            ) from exc

        logger.debug("API request: %s %s", descriptor.method, descriptor.url)
        try:
            response = await asyncio.wait_for(self._client.send(request), timeout=timeout_s)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ApiError(
                ApiErrorKind.TIMEOUT,
                f"Request timed out after {timeout_s:g}s",
                endpoint=label,
                cause=exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise ApiError(
                ApiErrorKind.NETWORK,
                str(exc) or type(exc).__name__,
                endpoint=label,
                cause=exc,
            ) from exc

        logger.debug("API response (%d): %s %s", response.status_code, descriptor.method, descriptor.url)
        return self._handle_response(response, descriptor, label)

    def _build_request(self, descriptor: RequestDescriptor, timeout_s: float) -> httpx.Request:
        kwargs: dict[str, Any] = {}
        if descriptor.is_multipart:
            kwargs["data"] = descriptor.form or {}
            kwargs["files"] = descriptor.files
        elif descriptor.body is not None:
            kwargs["content"] = descriptor.body.encode("utf-8")

        if descriptor.credentials is CredentialsMode.OMIT:
            kwargs["extensions"] = {OMIT_CREDENTIALS_EXTENSION: True}

        return self._client.build_request(
            descriptor.method,
            descriptor.url,
            headers=descriptor.headers,
            timeout=timeout_s,
            **kwargs,
        )

    def _handle_response(self, response: httpx.Response, descriptor: RequestDescriptor, label: str) -> ResponseEnvelope:
        status = response.status_code
        if status == 401:
            invalidate_session(self._token_store, self._on_session_expired, label)
            raise ApiError(ApiErrorKind.CLIENT_ERROR, SESSION_EXPIRED_MESSAGE, status=401, endpoint=label)

        raw_text = response.text
        data, parsed = _parse_json(raw_text)

        if response.is_success:
            return ResponseEnvelope(status=status, ok=True, data=data if parsed else {}, raw_text=raw_text)

        message = _server_message(data) if parsed else None
        if status >= 500:
            logger.error("Server error %d from %s %s: %s", status, descriptor.method, descriptor.url, raw_text[:300])
        raise ApiError(
            kind_for_status(status),
            message or f"Request failed with status {status}",
            status=status,
            endpoint=label,
            data=data if parsed else None,
        )

    async def get(self, endpoint: str | Endpoint, **options: Any) -> Any:
        return await self.request(endpoint, method="GET", **options)

    async def post(self, endpoint: str | Endpoint, payload: Any = None, **options: Any) -> Any:
        return await self.request(endpoint, method="POST", payload=payload, **options)

    async def put(self, endpoint: str | Endpoint, payload: Any = None, **options: Any) -> Any:
        return await self.request(endpoint, method="PUT", payload=payload, **options)

    async def patch(self, endpoint: str | Endpoint, payload: Any = None, **options: Any) -> Any:
        return await self.request(endpoint, method="PATCH", payload=payload, **options)

    async def delete(self, endpoint: str | Endpoint, **options: Any) -> Any:
        return await self.request(endpoint, method="DELETE", **options)
