"""Authentication commands for the Beltic wizard."""

from collections.abc import Callable
from datetime import datetime

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from beltic_wizard.core.api import ApiError, ConsoleApiClient
from beltic_wizard.core.config import (
    ConfigError,
    WizardConfig,
    WizardSettings,
    beltic_oauth_config,
)
from beltic_wizard.core.oauth import (
    AuthenticationCancelledError,
    FileSystemCredentialStore,
    HttpxHttpClient,
    OAuthError,
    OAuthFlow,
    StorageError,
    StoredCredentials,
    ValidationError,
    describe_failure,
)
from beltic_wizard.core.oauth.constants import ProjectLinks
from beltic_wizard.core.session import SessionBootstrapper

app = typer.Typer(help="Beltic authentication management")


def _load_settings(console: Console) -> WizardConfig:
    try:
        return WizardSettings.load()
    except ConfigError as e:
        console.print(
            Panel(
                f"[red]Invalid configuration.[/red]\n\n{escape(str(e))}",
                title="Configuration Error",
                border_style="red",
            )
        )
        raise typer.Exit(1) from None


def _format_expiry(credentials: StoredCredentials) -> str:
    if credentials.expires_at is None:
        return "Never"
    expires = datetime.fromtimestamp(credentials.expires_at / 1000).astimezone()
    return expires.strftime("%Y-%m-%d %H:%M:%S %Z")


def _make_confirm(console: Console, assume_yes: bool) -> Callable[[str], bool]:
    def confirm(message: str) -> bool:
        if assume_yes:
            return True
        if not console.is_interactive:
            raise AuthenticationCancelledError(
                "Cannot ask for login confirmation in a non-interactive terminal. "
                "Re-run with --yes to log in anyway."
            )
        return Confirm.ask(message, default=True, console=console)

    return confirm


def _print_error(console: Console, error: OAuthError) -> None:
    if isinstance(error, ApiError):
        title = "Profile Fetch Failed"
        message = (
            f"[red]Failed to authenticate:[/red] {escape(str(error))}\n\n"
            f"[dim]If you think this is a bug, please create an issue:\n"
            f"{ProjectLinks.ISSUES_URL}[/dim]"
        )
        style = "red"
    elif isinstance(error, StorageError):
        title = "Credential Storage Error"
        message = (
            "[red]Logged in, but the credentials could not be saved.[/red]\n\n"
            f"{escape(str(error))}"
        )
        style = "red"
    elif isinstance(error, AuthenticationCancelledError):
        title = "Authentication Required"
        message = f"[red]{escape(str(error))}[/red]"
        style = "red"
    else:
        description = describe_failure(error)
        title, message, style = description.title, description.message, description.style

    console.print(Panel(message, title=title, border_style=style))


@app.command()
def login(
    force: bool = typer.Option(
        False, "--force", help="Log in again even if stored credentials are valid"
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the login link without opening a browser"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the login confirmation prompt"),
) -> None:
    """Log in to the Beltic platform.

    Reuses stored credentials while they are valid. Otherwise a browser
    window opens for you to sign in, and the resulting credentials are
    saved to ~/.beltic/credentials.json.

    Example:
        beltic-wizard auth login
    """
    console = Console()
    settings = _load_settings(console)

    try:
        oauth_config = beltic_oauth_config(settings)
    except ValidationError as e:
        console.print(
            Panel(
                f"[red]Invalid OAuth configuration.[/red]\n\n{escape(str(e))}",
                title="Configuration Error",
                border_style="red",
            )
        )
        raise typer.Exit(1) from None

    store = FileSystemCredentialStore(settings.config_dir)
    http_client = HttpxHttpClient()
    bootstrapper = SessionBootstrapper(
        store,
        flow_factory=lambda: OAuthFlow(oauth_config, http_client=http_client, console=console),
        api_client=ConsoleApiClient(settings.api_url, http_client),
        confirm=_make_confirm(console, yes),
        console=console,
        open_browser=not no_browser,
    )

    try:
        credentials = bootstrapper.ensure_authenticated(force=force)
    except KeyboardInterrupt:
        console.print("\n[yellow]Login cancelled.[/yellow]")
        raise typer.Exit(1) from None
    except OAuthError as e:
        _print_error(console, e)
        raise typer.Exit(1) from None
    finally:
        http_client.close()

    console.print(
        Panel(
            f"[green]✅ Successfully authenticated![/green]\n\n"
            f"Email: {escape(credentials.email)}\n"
            f"Developer ID: {escape(credentials.subject_id)}\n"
            f"Session expires: {_format_expiry(credentials)}",
            title="Beltic Login",
            border_style="green",
        )
    )


@app.command()
def status() -> None:
    """Show the stored Beltic login.

    Example:
        beltic-wizard auth status
    """
    console = Console()
    settings = _load_settings(console)
    store = FileSystemCredentialStore(settings.config_dir)

    credentials = store.load()
    if credentials is None:
        console.print(
            Panel(
                "[yellow]Not logged in.[/yellow]\n\n"
                "Run 'beltic-wizard auth login' to authenticate.",
                title="Not Authenticated",
                border_style="yellow",
            )
        )
        raise typer.Exit(1) from None

    valid = store.is_valid(credentials)

    table = Table(title="Beltic Login Status")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    if valid:
        table.add_row("Status", "[green]✅ Authenticated[/green]")
    else:
        table.add_row("Status", "[yellow]Session expired[/yellow]")
    table.add_row("Email", escape(credentials.email))
    table.add_row("Name", escape(credentials.display_name or "Unknown"))
    table.add_row("Developer ID", escape(credentials.subject_id))
    table.add_row("Expires At", _format_expiry(credentials))
    table.add_row("Credentials File", store.path)

    console.print(table)

    if not valid:
        console.print("Run 'beltic-wizard auth login' to log in again.")
        raise typer.Exit(1) from None


@app.command()
def logout() -> None:
    """Remove the stored Beltic login.

    Example:
        beltic-wizard auth logout
    """
    console = Console()
    settings = _load_settings(console)
    store = FileSystemCredentialStore(settings.config_dir)

    if not store.credentials_file.exists():
        console.print(
            Panel(
                "[yellow]No stored credentials found.[/yellow]",
                title="Logout Info",
                border_style="yellow",
            )
        )
        return

    try:
        store.clear()
    except StorageError as e:
        console.print(
            Panel(
                f"[red]An error occurred during logout.[/red]\n\nError: {escape(str(e))}",
                title="Logout Error",
                border_style="red",
            )
        )
        raise typer.Exit(1) from None

    console.print(
        Panel(
            "[green]✅ Successfully logged out.[/green]",
            title="Logout Success",
            border_style="green",
        )
    )
