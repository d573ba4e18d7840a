import asyncio
import json
import logging
import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_config, save_config, delete_config, Config, TOKEN_ENV
from .api import RaindropAPI, RaindropError
from .server import run as run_server
from .tools import TOOLS

app = typer.Typer(help="raindrop-mcp: Raindrop.io tools for AI assistants over MCP")
# stdout carries the MCP stream; everything human-facing goes to stderr.
err_console = Console(stderr=True)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO, including full URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)


def print_error(error: RaindropError) -> None:
    hint = error.hint
    if not hint and error.status_code == 401:
        hint = "Authentication failed. Check the token and run 'raindrop-mcp login' again."
    print(json.dumps({"error": str(error), "status": error.status_code, "hint": hint}, indent=2))


@app.command()
def serve():
    """
    Run the MCP server on stdio.

    Example: RAINDROP_TOKEN=... raindrop-mcp serve
    """
    config = load_config()
    setup_logging(config.log_level)
    if not config.token:
        err_console.print(
            f"[bold red]Error:[/bold red] {TOKEN_ENV} environment variable is not set. "
            "Set it to your Raindrop.io API token or run `raindrop-mcp login`."
        )
        raise typer.Exit(code=1)
    asyncio.run(run_server(config.token))


@app.command()
def login(token: str = typer.Option(..., prompt="Enter your Raindrop.io API Token", hide_input=True)):
    """
    Login with your Raindrop.io API token (verifies before saving).

    Example: raindrop-mcp login
    """

    async def verify():
        api = RaindropAPI(token)
        try:
            return await api.get_user()
        finally:
            await api.close()

    try:
        user = asyncio.run(verify())
    except RaindropError as e:
        print_error(e)
        raise typer.Exit(code=1)

    config = load_config()
    config.token = token
    save_config(config)
    rprint(f"[bold green]Success![/bold green] Logged in as [bold]{user.get('fullName')}[/bold].")


@app.command()
def logout():
    """
    Remove your stored credentials.

    Example: raindrop-mcp logout
    """
    delete_config()
    rprint("[bold yellow]Logged out.[/bold yellow] Credentials removed.")


@app.command()
def whoami():
    """
    Show current user details.

    Example: raindrop-mcp whoami
    """
    config = load_config()
    if not config.token:
        rprint("[bold red]Error:[/bold red] Not logged in. Run `raindrop-mcp login` first.")
        raise typer.Exit(code=1)

    async def fetch():
        api = RaindropAPI(config.token)
        try:
            return await api.get_user()
        finally:
            await api.close()

    try:
        user = asyncio.run(fetch())
    except RaindropError as e:
        print_error(e)
        raise typer.Exit(code=1)
    print(json.dumps(user, indent=2))


@app.command()
def tools():
    """
    List the tools the server exposes.

    Example: raindrop-mcp tools
    """
    table = Table(title="Raindrop.io MCP tools")
    table.add_column("Name", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Access", style="green")

    for definition in TOOLS.values():
        if definition.destructive:
            access = "destructive"
        elif definition.read_only:
            access = "read-only"
        else:
            access = "write"
        table.add_row(definition.name, definition.title, access)
    Console().print(table)


if __name__ == "__main__":
    app()
