"""CLI: steam-relay credentials setup|status|clear"""

from pathlib import Path

import click
from rich.console import Console

from steam_relay.config import DEFAULT_CREDENTIALS_FILE
from steam_relay.credentials import load_credentials, prompt_credentials, save_credentials
from steam_relay.errors import ConfigError

console = Console()

path_option = click.option(
    "--credentials", "credentials_file", default=DEFAULT_CREDENTIALS_FILE,
    type=click.Path(dir_okay=False), show_default=True,
)


@click.group()
def credentials():
    """Saved Steam credentials."""


@credentials.command("setup")
@path_option
def credentials_setup(credentials_file: str):
    """Prompt for Steam credentials and save them."""
    creds = prompt_credentials(click.prompt)
    save_credentials(credentials_file, creds)
    console.print(f"[green]Credentials saved to {credentials_file}[/green]")


@credentials.command("status")
@path_option
def credentials_status(credentials_file: str):
    """Show which account is saved."""
    try:
        creds = load_credentials(credentials_file)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(2)
    if creds is None:
        console.print("[yellow]No saved credentials. Run `steam-relay credentials setup`.[/yellow]")
    else:
        console.print(f"[green]Saved account:[/green] {creds.account_name} ({credentials_file})")


@credentials.command("clear")
@path_option
def credentials_clear(credentials_file: str):
    """Delete the credentials file."""
    path = Path(credentials_file)
    if path.exists():
        path.unlink()
        console.print("[green]Credentials removed.[/green]")
    else:
        console.print("[dim]Nothing to remove.[/dim]")
