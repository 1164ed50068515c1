"""copilotauth CLI — powered by Typer."""

from __future__ import annotations

import asyncio
import logging
import uuid

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from copilotauth import __version__
from copilotauth.config import COPILOT_TOKEN_ENV

app = typer.Typer(
    name="copilotauth",
    help="🔐 GitHub Copilot device-flow login and token storage",
    no_args_is_help=True,
    invoke_without_command=True,
    rich_markup_mode="rich",
)
auth_app = typer.Typer(help="🔐 Authentication management")
app.add_typer(auth_app, name="auth")

console = Console()
err_console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def mask_secret(secret: str) -> str:
    """First 20 chars, plus the last 20 for long secrets."""
    head = secret[:20]
    tail = secret[-20:] if len(secret) > 40 else ""
    return f"{head}...{tail}"


# ── Auth commands ───────────────────────────────────────────────────


async def _login(no_browser: bool, export: bool):
    from copilotauth.auth.events import AuthComplete, AuthStarted, Event
    from copilotauth.auth.oauth import handle_copilot_auth

    queue: asyncio.Queue[Event] = asyncio.Queue()
    sub_id = uuid.uuid4().hex

    async def _render() -> None:
        while True:
            event = await queue.get()
            if event.id != sub_id:
                continue
            if isinstance(event.msg, AuthStarted):
                console.print()
                console.print(
                    Panel.fit(
                        f"1. Open: [bold link={event.msg.verification_uri}]"
                        f"{event.msg.verification_uri}[/]\n"
                        f"2. Enter code: [bold yellow]{event.msg.user_code}[/]\n"
                        "3. Authorize the application",
                        title="GitHub Authorization Required",
                        border_style="cyan",
                    )
                )
                console.print("[dim]Waiting for authorization...[/]")
            elif isinstance(event.msg, AuthComplete):
                return

    renderer = asyncio.create_task(_render())
    try:
        outcome = await handle_copilot_auth(
            queue,
            sub_id,
            launch_browser=not no_browser,
            export_env=export,
        )
    except BaseException:
        renderer.cancel()
        raise
    # every attempt ends with an AuthComplete, which stops the renderer
    await renderer
    return outcome


@auth_app.command("login")
def auth_login(
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Don't try to open the verification page."
    ),
    export: bool = typer.Option(
        False,
        "--export",
        help=f"Also set {COPILOT_TOKEN_ENV} in this process (for embedding callers).",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
) -> None:
    """Authenticate with GitHub Copilot using the OAuth device flow."""
    from copilotauth.auth.errors import TransportError

    _setup_logging(verbose)

    try:
        outcome = asyncio.run(_login(no_browser, export))
    except TransportError as e:
        console.print(f"[bold red]❌ Network error:[/] {e}")
        raise typer.Exit(1)

    console.print()
    if outcome.success:
        console.print(f"[bold green]✅ {outcome.message}[/]")
    else:
        console.print(f"[bold red]❌ {outcome.message}[/]")
        raise typer.Exit(1)


@auth_app.command("status")
def auth_status() -> None:
    """Show current Copilot token status."""
    from copilotauth.auth.errors import PersistenceError
    from copilotauth.auth.storage import CredentialStore
    from copilotauth.environment import get_process_env

    try:
        store = CredentialStore()
    except PersistenceError as e:
        console.print(f"[bold red]❌ {e}[/]")
        raise typer.Exit(1)

    try:
        cred = store.load()
    except PersistenceError as e:
        console.print(f"[yellow]⚠️  Error loading persisted token:[/] {e}")
        cred = None
    else:
        if cred is None:
            console.print("[bold red]❌ No persisted token found[/]")
        else:
            console.print("[bold green]✅ Persisted token found[/]")
            console.print(f"[dim]   File: {store.path}[/]")
            minutes = cred.expires_in_minutes()
            if minutes is None:
                console.print("[dim]   Status: Valid (no expiration)[/]")
            else:
                console.print(f"[dim]   Status: Valid (expires in {minutes} minutes)[/]")
            if cred.sku:
                console.print(f"[dim]   SKU: {cred.sku}[/]")
            if cred.proxy_endpoint:
                console.print(f"[dim]   Proxy: {cred.proxy_endpoint}[/]")

    console.print()
    env_token = get_process_env(store.env_var)
    if env_token:
        console.print(f"[bold green]✅ Environment variable {store.env_var} is set[/]")
        console.print(f"[dim]   Value: {mask_secret(env_token)}[/]")
    else:
        console.print(f"[bold red]❌ Environment variable {store.env_var} is not set[/]")

    console.print()
    if store.get_valid_secret() is None:
        console.print("[bold red]❌ No valid token available for API calls[/]")
        console.print("[dim]   Run: copilotauth auth login[/]")
        raise typer.Exit(1)
    console.print("[bold green]✅ Token is available for API calls[/]")


@auth_app.command("logout")
def auth_logout() -> None:
    """Remove the stored Copilot token."""
    from copilotauth.auth.errors import PersistenceError
    from copilotauth.auth.storage import CredentialStore

    try:
        removed = CredentialStore().clear()
    except PersistenceError as e:
        console.print(f"[bold red]❌ {e}[/]")
        raise typer.Exit(1)

    if removed:
        console.print("[bold green]✅ Credentials removed[/]")
    else:
        console.print("[dim]No credentials found[/]")


# ── Token command ───────────────────────────────────────────────────


@app.command("token")
def print_token() -> None:
    """Print the valid Copilot token, e.g. for `export COPILOT_TOKEN=$(copilotauth token)`."""
    from copilotauth.auth.storage import load_copilot_token

    secret = load_copilot_token()
    if secret is None:
        err_console.print("[bold red]❌ No valid token. Run: copilotauth auth login[/]")
        raise typer.Exit(1)
    typer.echo(secret)


# ── Version ─────────────────────────────────────────────────────────


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit"
    ),
) -> None:
    if version:
        console.print(f"copilotauth v{__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()
