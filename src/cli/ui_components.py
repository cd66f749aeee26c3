"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from pathlib import Path

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.endpoints import Endpoint
from core.domain.errors import ApiError
from core.domain.models import AuthUser


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("ATORIX ADMIN", style="bold cyan")
    subtitle = Text("Leads • Usuarios • Backend API", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_endpoints_table(base_url: str) -> Table:
    table = Table(title="API Endpoints")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Path", style="white")
    table.add_column("Origin", style="dim")
    for endpoint in Endpoint:
        origin = "dashboard" if endpoint is Endpoint.LOGOUT else base_url
        table.add_row(endpoint.name, endpoint.value, origin)
    return table


def build_session_table(*, user: AuthUser | None, authenticated: bool, session_file: Path) -> Table:
    table = Table(title="Session", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Authenticated", "yes" if authenticated else "no")
    if user is not None:
        table.add_row("Name", user.name or "-")
        table.add_row("Email", user.email or "-")
        table.add_row("Role", user.role or "-")
        table.add_row("ID", user.id or "-")
    table.add_row("Session file", str(session_file))
    return table


def build_error_panel(error: ApiError) -> Panel:
    """Panel para un `ApiError` terminal (nunca un traceback)."""

    body = Text(error.message + "\n", style="bold")
    if error.status is not None:
        body.append(f"\nStatus: {error.status}", style="dim")
    body.append(f"\nKind: {error.kind.value}", style="dim")
    if error.endpoint:
        body.append(f"\nEndpoint: {error.endpoint}", style="dim")
    if error.session_expired:
        body.append("\n\nRun `atorix-admin login` to start a new session.", style="yellow")
    return Panel(body, title=Text("Request failed", style="bold red"), border_style="red")
