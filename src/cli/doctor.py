"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.interceptor import build_intercepted_client
from adapters.token_store import FileTokenStore
from core.config import AppSettings, get_user_env_file
from core.domain.endpoints import Endpoint

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_backend(settings: AppSettings, store: FileTokenStore) -> tuple[bool, str]:
    """Raw GET on the relative ping route; the interceptor resolves it against the backend."""

    try:
        async with build_intercepted_client(settings, token_store=store) as client:
            response = await client.get(Endpoint.PING.value, timeout=5.0)
        return response.is_success, f"HTTP {response.status_code} ({response.request.url})"
    except Exception as exc:
        return False, str(exc) or type(exc).__name__


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    store = FileTokenStore(settings.resolved_session_file())

    table = Table(title="Atorix Admin Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API base_url", "OK", settings.api_base_url)
    table.add_row("App base_url", "OK", settings.app_base_url)
    table.add_row(
        "Retry policy",
        "OK",
        f"{settings.max_attempts} attempts, {settings.retry_base_delay_ms}ms linear, "
        f"{settings.rate_limit_delay_ms}ms on 429",
    )
    env_file = get_user_env_file()
    table.add_row("User .env", "OK" if env_file.exists() else "OPTIONAL", str(env_file))

    # Session
    if store.is_authenticated():
        user = store.get_current_user()
        table.add_row("Session", "OK", (user.email or user.name or "token only") if user else "token only")
    else:
        table.add_row("Session", "NONE", "Run `atorix-admin login`")

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_backend(settings, store))
    table.add_row("Backend ping", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_http:
        _console.print(
            "\n[yellow]Note:[/yellow] Set the backend URL with `atorix-admin configure --api-base-url ...` "
            "or the ATORIX_API_BASE_URL environment variable."
        )
