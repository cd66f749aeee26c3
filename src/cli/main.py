"""CLI principal (Typer + Rich).

Por qué una CLI:
- Da un punto de entrada real al executor (login, peticiones ad hoc, ping)
  para operar el backend del dashboard desde terminal o scripts.
- La sesión se guarda en el directorio de config del usuario entre comandos.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.http_client import ApiClient
from adapters.json_exporter import export_json
from adapters.token_store import FileTokenStore
from cli import doctor
from cli.ui_components import build_endpoints_table, build_error_panel, build_session_table, print_banner
from core.config import AppSettings, write_user_env_vars
from core.domain.endpoints import Endpoint
from core.domain.errors import ApiError
from core.services.auth_service import AuthService
from core.services.leads_service import LeadsService

app = typer.Typer(no_args_is_help=True, help="Atorix admin API client.")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, rich_tracebacks=False, show_path=False)],
        force=True,
    )


def _on_session_expired(source: str) -> None:
    _err_console.print(f"[yellow]Session expired ({source}). Run `atorix-admin login` again.[/yellow]")


def build_client(settings: AppSettings) -> ApiClient:
    """Cliente único por comando, con la sesión persistida de la CLI."""

    return ApiClient(
        settings,
        token_store=FileTokenStore(settings.resolved_session_file()),
        on_session_expired=_on_session_expired,
    )


def _resolve_target(value: str) -> str | Endpoint:
    """Nombre del registro (`BUSINESS_LEADS`), ruta relativa o URL absoluta."""

    return Endpoint.lookup(value) or value


def _parse_headers(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values:
        if ":" not in raw:
            raise typer.BadParameter(f"Header must look like 'Name: value', got {raw!r}")
        key, value = raw.split(":", 1)
        headers[key.strip()] = value.strip()
    return headers


def _fail(error: ApiError) -> None:
    _err_console.print(build_error_panel(error))
    raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def login(
    username: str = typer.Option(..., "--username", "-u", prompt=True, help="Admin username or e-mail."),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Authenticate against the backend and store the session."""

    settings = AppSettings()

    async def _login():
        async with build_client(settings) as client:
            return await AuthService(client).login(username, password)

    result = asyncio.run(_login())
    if not result.success:
        _err_console.print(f"[red]Login failed:[/red] {result.message}")
        raise typer.Exit(code=1)

    who = (result.user and (result.user.name or result.user.email)) or username
    _console.print(f"[green]Logged in as[/green] {who}")


@app.command()
def logout() -> None:
    """End the dashboard session and clear the local token."""

    settings = AppSettings()

    async def _logout() -> None:
        async with build_client(settings) as client:
            await AuthService(client).logout()

    asyncio.run(_logout())
    _console.print("[green]Logged out.[/green]")


@app.command()
def whoami() -> None:
    """Show the stored session (no network call)."""

    settings = AppSettings()
    store = FileTokenStore(settings.resolved_session_file())
    _console.print(
        build_session_table(
            user=store.get_current_user(),
            authenticated=store.is_authenticated(),
            session_file=store.path,
        )
    )


@app.command()
def request(
    method: str = typer.Argument(..., help="HTTP method (GET, POST, PUT, PATCH, DELETE)."),
    endpoint: str = typer.Argument(..., help="Registry name, relative path or absolute URL."),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="JSON body."),
    header: list[str] = typer.Option([], "--header", "-H", help="Extra header 'Name: value' (repeatable)."),
    retries: Optional[int] = typer.Option(None, "--retries", min=0, help="Retries after the first attempt."),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=0.1, help="Per-attempt timeout (seconds)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON response to a file."),
) -> None:
    """Send one request through the resilient executor and print the JSON response."""

    settings = AppSettings()
    payload: Any = None
    if data is not None:
        try:
            payload = json.loads(data)
        except ValueError as exc:
            raise typer.BadParameter(f"--data is not valid JSON: {exc}") from exc

    async def _send() -> Any:
        async with build_client(settings) as client:
            return await client.request(
                _resolve_target(endpoint),
                method=method,
                headers=_parse_headers(header),
                payload=payload,
                retries=retries,
                timeout=timeout,
            )

    try:
        result = asyncio.run(_send())
    except ApiError as exc:
        _fail(exc)
        return

    if output is not None:
        path = export_json(payload=result, output_path=output)
        _console.print(f"[green]Saved response to:[/green] {path}")
        return
    _console.print_json(data=result)


@app.command()
def ping(timeout: float = typer.Option(5.0, "--timeout", min=0.1)) -> None:
    """Wake the backend up and report whether it answered."""

    settings = AppSettings()

    async def _ping() -> bool:
        async with build_client(settings) as client:
            return await LeadsService(client).ping_backend(timeout=timeout)

    if asyncio.run(_ping()):
        _console.print(f"[green]Backend reachable:[/green] {settings.api_base_url}")
        return
    _err_console.print(f"[red]Backend unreachable:[/red] {settings.api_base_url}")
    raise typer.Exit(code=1)


@app.command()
def endpoints() -> None:
    """List the known API endpoints."""

    settings = AppSettings()
    print_banner(_console)
    _console.print(build_endpoints_table(settings.api_base_url))


@app.command()
def configure(
    api_base_url: Optional[str] = typer.Option(None, "--api-base-url", help="Backend base URL."),
    app_base_url: Optional[str] = typer.Option(None, "--app-base-url", help="Dashboard origin."),
) -> None:
    """Store base URLs in the user config .env."""

    values = {
        "ATORIX_API_BASE_URL": api_base_url,
        "ATORIX_APP_BASE_URL": app_base_url,
    }
    values = {k: v.strip() for k, v in values.items() if v}
    if not values:
        raise typer.BadParameter("Pass --api-base-url and/or --app-base-url")

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved config to:[/green] {env_path}")


def run() -> None:
    app()
