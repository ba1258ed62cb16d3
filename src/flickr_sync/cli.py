"""Command-line interface for Flickr sync."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from flickr_sync.api_client import FlickrAPIClient
from flickr_sync.auth import AuthenticationError, authorize as run_oauth_handshake
from flickr_sync.config import DEFAULT_CONFIG_FILE, ConfigurationError, load_config, save_oauth_token
from flickr_sync.inventory import InventoryError
from flickr_sync.reconciler import Reconciler

app = typer.Typer(
    name="flickr-sync",
    help="Sync a local photo library to Flickr albums",
    add_completion=False,
)
console = Console()

logger = logging.getLogger(__name__)

CONFIG_OPTION = typer.Option(
    Path(DEFAULT_CONFIG_FILE),
    "--config",
    "-c",
    envvar="FLICKR_SYNC_CONFIG",
    dir_okay=False,
    help="JSON configuration file (or set FLICKR_SYNC_CONFIG env var)",
)


def parse_log_level(name: str | None) -> int:
    """Map a level name such as "debug" to its logging constant, defaulting to INFO."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(verbose: bool, log_level: str | None = None, log_output: str | None = None) -> None:
    """Configure logging with Rich handler.

    Args:
        verbose: Enable verbose (DEBUG) logging, overriding log_level
        log_level: Level name from the configuration
        log_output: Optional file that receives a copy of the log

    Raises:
        ConfigurationError: If log_output cannot be opened for writing
    """
    level = logging.DEBUG if verbose else parse_log_level(log_level)
    handlers: list[logging.Handler] = [RichHandler(rich_tracebacks=True, console=console)]
    if log_output:
        try:
            file_handler = logging.FileHandler(log_output, encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot open log_output {log_output}: {e}") from e
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)
    # Failed requests are reported by FlickrAPIClient
    logging.getLogger("flickrapi").setLevel(logging.CRITICAL)


@app.command()
def sync(
    config_file: Path = CONFIG_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Read Flickr and report what would be uploaded without changing anything",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Upload photos missing from Flickr.

    Every sub-directory of the library becomes a Flickr album named after
    the directory. Photos already present in the album (matched by file
    name without extension) are skipped. Files directly in the library
    root are never uploaded.
    """
    setup_logging(verbose)
    try:
        config = load_config(config_file)
        config.validate()
        setup_logging(verbose, config.log_level, config.log_output)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    try:
        Reconciler(FlickrAPIClient.from_config(config), config, dry_run=dry_run).run()
    except InventoryError as e:
        logger.critical(str(e))
        raise typer.Exit(1)


@app.command()
def authorize(
    config_file: Path = CONFIG_OPTION,
    save: bool = typer.Option(
        False,
        "--save",
        help="Write the obtained token into the configuration file",
    ),
) -> None:
    """Obtain an OAuth token granting this application access to your account."""
    setup_logging(False)
    try:
        config = load_config(config_file)
        config.validate(require_token=False, require_library=False)
        setup_logging(False, config.log_level, config.log_output)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    def ask_verifier(url: str) -> str:
        console.print(f"Open your browser at this url: {url}")
        return typer.prompt("Then, insert the code")

    try:
        token = run_oauth_handshake(config.api_key, config.api_secret, ask_verifier)
    except AuthenticationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"oauth_token: {token.token}")
    console.print(f"oauth_token_secret: {token.secret}")

    if save:
        save_oauth_token(config_file, token.token, token.secret)
        console.print(f"[green]Token saved to {config_file}[/green]")
    else:
        console.print(
            f"Please update {config_file} with the corresponding oauth_token and oauth_token_secret"
        )


if __name__ == "__main__":
    app()
