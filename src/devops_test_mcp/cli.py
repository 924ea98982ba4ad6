"""DevOps Test MCP CLI - Main entry point."""

import asyncio
import logging
import os

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .auth import AuthError, create_auth_provider
from .config import Settings, load_settings

app = typer.Typer(
    name="devops-test-mcp",
    help="MCP server for DevOps Test - list, run and analyze tests",
    no_args_is_help=True,
)
# stdout carries the MCP protocol, so all human output goes to stderr.
console = Console(stderr=True)

auth_app = typer.Typer(help="Authentication commands")
app.add_typer(auth_app, name="auth")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(
    token: str | None,
    server_url: str | None,
    teamspace_id: str | None,
    auth_mode: str | None,
    log_level: str | None,
) -> Settings:
    """Load settings or exit with a readable configuration error."""
    try:
        settings = load_settings(
            access_token=token,
            server_url=server_url,
            teamspace_id=teamspace_id,
            auth_mode=auth_mode,
            log_level=log_level,
        )
    except AuthError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    configure_logging(settings.log_level)
    return settings


TokenOption = typer.Option(None, "--token", help="Personal access or offline token [env: TEST_ACCESS_TOKEN]")
ServerUrlOption = typer.Option(None, "--server-url", help="DevOps Test server URL [env: TEST_SERVER_URL]")
TeamspaceOption = typer.Option(None, "--teamspace-id", help="Teamspace ID [env: TEST_TEAMSPACE_ID]")
AuthModeOption = typer.Option(None, "--auth-mode", help="'direct' or 'brokered' [env: TEST_AUTH_MODE]")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level [env: TEST_LOG_LEVEL]")


# ============================================================================
# Server
# ============================================================================


@app.command("serve")
def serve(
    token: str = TokenOption,
    server_url: str = ServerUrlOption,
    teamspace_id: str = TeamspaceOption,
    auth_mode: str = AuthModeOption,
    log_level: str = LogLevelOption,
):
    """Run the MCP server over stdio."""
    from .server import create_server

    settings = _load(token, server_url, teamspace_id, auth_mode, log_level)
    try:
        server = create_server(settings)
    except AuthError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    server.run("stdio")


# ============================================================================
# Auth Commands
# ============================================================================


def _mask(value: str) -> str:
    if len(value) <= 12:
        return "*" * len(value)
    return f"{value[:6]}...{value[-4:]}"


@auth_app.command("status")
def auth_status():
    """Show which settings are configured, without contacting the server."""
    from dotenv import dotenv_values

    from .config import REQUIRED_SETTINGS

    config = dotenv_values(".env")

    table = Table(title="DevOps Test Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Source", style="green")

    env_vars = [env_var for env_var, _ in REQUIRED_SETTINGS.values()]
    env_vars += ["TEST_AUTH_MODE", "KEYCLOAK_CLIENT_ID", "KEYCLOAK_CLIENT_SECRET"]
    for env_var in env_vars:
        if os.environ.get(env_var):
            source = "environment"
        elif config.get(env_var):
            source = ".env"
        else:
            source = "[red]Not set[/red]"
        table.add_row(env_var, source)

    console.print(table)


@auth_app.command("check")
def auth_check(
    token: str = TokenOption,
    server_url: str = ServerUrlOption,
    teamspace_id: str = TeamspaceOption,
    auth_mode: str = AuthModeOption,
    log_level: str = LogLevelOption,
):
    """Authenticate once and show the token status."""
    settings = _load(token, server_url, teamspace_id, auth_mode, log_level)

    try:
        auth = create_auth_provider(settings)
        header = asyncio.run(auth.get_authorization_header())
    except AuthError as e:
        console.print(f"[red]Authentication failed:[/red] {e}")
        raise typer.Exit(1)

    status = auth.get_status()
    table = Table(title="DevOps Test Authentication Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Server URL", settings.clean_server_url)
    table.add_row("Teamspace ID", settings.teamspace_id or "-")
    table.add_row("Auth mode", status["scheme"])
    table.add_row("Token endpoint", status["token_endpoint"])
    table.add_row("Access token", _mask(header.removeprefix("Bearer ")))
    table.add_row("Refresh token", "Cached" if status["has_refresh_token"] else "-")
    expires = status["expires_in_seconds"]
    table.add_row("Expires in", f"{expires}s" if expires is not None else "Unknown")

    console.print(table)


@auth_app.command("token")
def auth_token(
    token: str = TokenOption,
    server_url: str = ServerUrlOption,
    teamspace_id: str = TeamspaceOption,
    auth_mode: str = AuthModeOption,
    log_level: str = LogLevelOption,
):
    """Print the Authorization header value for manual API calls."""
    settings = _load(token, server_url, teamspace_id, auth_mode, log_level)

    try:
        auth = create_auth_provider(settings)
        header = asyncio.run(auth.get_authorization_header())
    except AuthError as e:
        console.print(f"[red]Authentication failed:[/red] {e}")
        raise typer.Exit(1)

    typer.echo(header)
