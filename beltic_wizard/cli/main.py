"""Main CLI entry point for beltic-wizard."""

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from beltic_wizard.cli.commands import auth
from beltic_wizard.core.config import WizardSettings, validate_all
from beltic_wizard.core.logging import configure_root_logging

app = typer.Typer(
    name="beltic-wizard",
    help="Beltic Wizard CLI - set up Beltic credentials for your agent",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Add subcommands
app.add_typer(auth.app, name="auth", help="Log in to the Beltic platform")


@app.command()
def version() -> None:
    """Show version information."""
    from beltic_wizard import __version__

    console = Console()
    console.print(f"[bold cyan]beltic-wizard[/bold cyan] version [green]{__version__}[/green]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Beltic Wizard CLI."""
    errors = validate_all()
    if errors:
        console = Console()
        details = "\n".join(f"• {escape(str(error))}" for error in errors)
        console.print(
            Panel(
                f"[red]Invalid configuration.[/red]\n\n{details}",
                title="Configuration Error",
                border_style="red",
            )
        )
        raise typer.Exit(1)

    settings = WizardSettings.load()
    configure_root_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


if __name__ == "__main__":
    app()
