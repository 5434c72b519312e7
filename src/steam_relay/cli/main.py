"""
steam-relay CLI.

Commands:
  steam-relay serve                      Log on to Steam and run the relay
  steam-relay credentials setup          Prompt for and save credentials
  steam-relay credentials status|clear   Inspect or delete saved credentials
"""

import asyncio
import logging
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install steam-chat-relay[cli]")

from steam_relay import __version__
from steam_relay.config import RelayConfig, load_config
from steam_relay.credentials import get_credentials
from steam_relay.errors import AuthError, ConfigError

console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load(config_path: Optional[str], **overrides) -> RelayConfig:
    try:
        return load_config(config_path).with_overrides(**overrides)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(2)


@click.group()
@click.version_option(__version__)
def main():
    """Relay Steam friend chat to browser clients."""


@main.command("serve")
@click.option("-c", "--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="JSON config file")
@click.option("--host", default=None)
@click.option("--port", default=None, type=int)
@click.option("--credentials", "credentials_file", default=None, type=click.Path(dir_okay=False))
@click.option("--static-dir", default=None, type=click.Path(file_okay=False),
              help="Directory holding the browser client")
@click.option("--status-interval", default=None, type=float, help="Seconds between status logs, 0 disables")
@click.option("--log-level", default=None)
def serve(config_path, host, port, credentials_file, static_dir, status_interval, log_level):
    """Log on to Steam and serve the push channel."""
    try:
        from steam_relay.steam_client import SteamUpstream
    except ImportError:
        raise SystemExit("serve requires extras: pip install steam-chat-relay[steam]")
    from steam_relay.server import run_relay

    cfg = _load(
        config_path, host=host, port=port, credentials_file=credentials_file,
        static_dir=static_dir, status_interval=status_interval, log_level=log_level,
    )
    configure_logging(cfg.log_level)
    try:
        creds = get_credentials(cfg.credentials_file, click.prompt)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(2)

    try:
        asyncio.run(run_relay(cfg, SteamUpstream(), creds))
    except AuthError as e:
        console.print(f"[red]Steam log-on failed: {e}[/red]")
        raise SystemExit(1)
    except KeyboardInterrupt:
        console.print("[dim]Shutting down.[/dim]")


# Register subcommands from separate modules
from steam_relay.cli.credentials import credentials

main.add_command(credentials)


if __name__ == "__main__":
    main()
