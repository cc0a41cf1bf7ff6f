"""
Document Gateway CLI Application.

Main entry point for the ``docstore`` command-line interface: configuration
checks, store health, federated queries and large-object transfer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.store import DocumentGateway, DocumentStoreError, create_gateway
from ..exceptions.config_exceptions import ConfigurationError
from ..utils.config import ConfigManager
from ..utils.logging_config import LoggingManager, LogLevel

# Initialize console for rich output
console = Console()

# Create main Typer app
app = typer.Typer(
    name="docstore",
    help="Validated access, federated search and large objects for a document store",
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

# Global state
_config_manager: Optional[ConfigManager] = None
_logger: Optional[logging.Logger] = None


def setup_logging(
    verbose: bool = False,
    logging_config: Optional[Dict[str, Any]] = None,
) -> logging.Logger:
    """
    Set up logging configuration.
    
    Args:
        verbose: Enable verbose (DEBUG) logging, overriding the configured level
        logging_config: The ``logging`` section of config.json, if any
        
    Returns:
        Configured logger instance
    """
    logging_config = dict(logging_config or {})
    if verbose:
        logging_config['level'] = LogLevel.DEBUG.name
    else:
        logging_config.setdefault('level', LogLevel.WARNING.name)
    
    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    LoggingManager.from_config(logging_config, console_handler=rich_handler)
    
    return logging.getLogger("document_gateway")


def _logging_section(config_manager: ConfigManager) -> Dict[str, Any]:
    """Read the ``logging`` section; empty when the config file is missing or broken."""
    if not config_manager.file_ops.resolve_path(config_manager.config_file).exists():
        return {}
    try:
        return config_manager.get('logging', {}) or {}
    except ConfigurationError:
        # Reported by the command that needs the configuration
        return {}


def get_config_manager(config_path: Optional[str] = None) -> ConfigManager:
    """
    Get or create the global configuration manager.
    
    Raises:
        typer.Exit: If configuration loading fails
    """
    global _config_manager
    
    if _config_manager is None or config_path:
        try:
            _config_manager = ConfigManager(config_file=config_path, load_env=True)
        except ConfigurationError as e:
            rprint(f"[red]Configuration Error:[/red] {e}")
            raise typer.Exit(1)
    
    return _config_manager


def _run(action: Callable[[DocumentGateway], Awaitable[Any]]) -> Any:
    """Run one gateway action on a fresh event loop and close the connection afterwards."""
    try:
        gateway = create_gateway(get_config_manager())
    except ConfigurationError as e:
        rprint(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(1)
    
    async def runner() -> Any:
        try:
            return await action(gateway)
        finally:
            gateway.close_connection()
    
    try:
        return asyncio.run(runner())
    except DocumentStoreError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _parse_json_option(value: Optional[str], option: str) -> dict:
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        rprint(f"[red]Error:[/red] {option} is not valid JSON: {e}")
        raise typer.Exit(2)
    if not isinstance(parsed, dict):
        rprint(f"[red]Error:[/red] {option} must be a JSON object")
        raise typer.Exit(2)
    return parsed


# Global callback for common options
@app.callback()
def main(
    config_path: Optional[str] = typer.Option(
        None,
        "--config-path",
        "-c",
        help="Path to configuration file (default: config.json)",
        metavar="PATH",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging (DEBUG level)",
    ),
) -> None:
    """
    Document store gateway.
    
    Common workflows:
    • Check the store: docstore health
    • Search collections: docstore query-all users orders --filter '{"name": "ada"}'
    • Store a file: docstore put report.pdf --meta '{"owner.name": "ada"}'
    """
    global _logger, _config_manager
    _config_manager = None
    
    config_manager = get_config_manager(config_path)
    _logger = setup_logging(verbose, _logging_section(config_manager))


@app.command("check-config")
def check_config() -> None:
    """Load and validate the configuration."""
    config_manager = get_config_manager()
    try:
        store_config = config_manager.store_config()
    except ConfigurationError as e:
        rprint(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(1)
    
    info_text = Text()
    info_text.append(f"Config file: {config_manager.config_file}\n")
    info_text.append(f"Server: {store_config.server_url}:{store_config.port}\n")
    info_text.append(f"Database: {store_config.db_name}\n")
    info_text.append(f"URL: {store_config.url}")
    console.print(Panel(info_text, title="Configuration valid", border_style="green"))


@app.command()
def health() -> None:
    """Ping the store and list its collections."""
    status = _run(lambda gateway: gateway.health_check())
    
    info_text = Text()
    info_text.append(f"Status: {status.status}\n", style="bold")
    info_text.append(f"URL: {status.url}\n")
    info_text.append(f"Collections ({status.collections_count}): {', '.join(status.collections)}")
    for error in status.errors:
        info_text.append(f"\n{error}", style="red")
    
    healthy = status.status == "healthy"
    console.print(Panel(info_text, title="Store health", border_style="green" if healthy else "red"))
    if not healthy:
        raise typer.Exit(1)


@app.command("query-all")
def query_all(
    collections: List[str] = typer.Argument(..., help="Collections to search"),
    filter_json: Optional[str] = typer.Option(
        None, "--filter", "-f", help="Query values as a JSON object"
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", help="Maximum number of merged results"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON instead of a table"),
) -> None:
    """Search several collections and merge the results."""
    # Each collection gets its own values mapping since dispatch normalizes in place
    objects = [
        {"collection": name, "values": _parse_json_option(filter_json, "--filter")}
        for name in collections
    ]
    
    docs = _run(lambda gateway: gateway.query_all(objects, count=limit))
    
    if as_json:
        typer.echo(json.dumps(docs, default=str, indent=2))
        return
    
    if not docs:
        rprint("[yellow]No documents found[/yellow]")
        return
    
    table = Table(title=f"{len(docs)} documents")
    table.add_column("Collection", style="cyan")
    table.add_column("Id")
    table.add_column("Document")
    for doc in docs:
        body = {k: v for k, v in doc.items() if k not in ("_id", "collection")}
        table.add_row(doc.get("collection", ""), str(doc.get("_id", "")), json.dumps(body, default=str))
    console.print(table)


@app.command()
def put(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
    name: Optional[str] = typer.Option(None, "--name", help="Object name (default: file name)"),
    meta: Optional[str] = typer.Option(
        None, "--meta", "-m", help="Metadata as a JSON object; dotted keys are nested"
    ),
    content_type: Optional[str] = typer.Option(None, "--type", "-t", help="MIME type"),
) -> None:
    """Upload a file as a large object."""
    metadata = _parse_json_option(meta, "--meta")
    info = _run(
        lambda gateway: gateway.write_file(
            path, name=name, metadata=metadata, content_type=content_type
        )
    )
    rprint(f"[green]✓[/green] Stored '{info.name}' ({info.length} bytes) as [bold]{info.file_id}[/bold]")


@app.command()
def get(
    name: str = typer.Argument(..., help="Object name"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write to this file instead of stdout"),
) -> None:
    """Download a large object by name."""
    data = _run(lambda gateway: gateway.read_large_object(name))
    
    if out is None:
        stream = typer.get_binary_stream("stdout")
        stream.write(data)
        stream.flush()
        return
    
    out.write_bytes(data)
    rprint(f"[green]✓[/green] Wrote {len(data)} bytes to {out}")


@app.command()
def exists(file_id: str = typer.Argument(..., help="Large object id")) -> None:
    """Check whether a large object exists (exit code 1 if not)."""
    found = _run(lambda gateway: gateway.object_exists(file_id))
    if found:
        rprint(f"[green]✓[/green] {file_id} exists")
    else:
        rprint(f"[yellow]{file_id} not found[/yellow]")
        raise typer.Exit(1)


@app.command()
def rm(file_id: str = typer.Argument(..., help="Large object id")) -> None:
    """Delete a large object."""
    _run(lambda gateway: gateway.remove_object(file_id))
    rprint(f"[green]✓[/green] Removed {file_id}")


def cli_main() -> None:
    """
    Main CLI entry point with error handling.
    
    This function is called by the console script entry point.
    """
    try:
        app()
    except KeyboardInterrupt:
        rprint("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(130)


if __name__ == "__main__":
    cli_main()
