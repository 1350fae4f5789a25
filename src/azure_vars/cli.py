"""Main CLI entry point for azure-vars."""

import logging
import os

import typer
from rich.console import Console
from rich.table import Table

from azure_vars import __version__
from azure_vars.config import Config, ConfigError, ConfigStore, get_config_path
from azure_vars.core.auth import AuthError, AzureCliAuthBridge, PatAuthBridge, TokenProvider
from azure_vars.core.devops_client import AzureDevOpsClient
from azure_vars.logging_config import setup_logging

PAT_ENV = "ADO_PAT"

app = typer.Typer(
    name="azure-vars",
    help="Browse Azure DevOps variable groups from the terminal",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"azure-vars version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-v", help="Show version and exit", callback=version_callback
    ),
) -> None:
    """azure-vars - Azure DevOps variable group browser."""
    pass


@app.command()
def info() -> None:
    """Show information about azure-vars."""
    table = Table(title="azure-vars Information")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Description", "Azure DevOps variable group browser")
    table.add_row("Config", str(get_config_path()))

    console.print(table)


@app.command()
def init(
    organization: str | None = typer.Option(
        None, "--organization", "-o", help="Azure DevOps organization"
    ),
    project: str | None = typer.Option(
        None, "--project", "-p", help="Azure DevOps project"
    ),
) -> None:
    """Create the configuration file with a default organization and project."""
    store = ConfigStore()
    if store.exists():
        console.print(f"Config file already exists at {store.path}")
        raise typer.Exit(0)

    organization = organization or typer.prompt("Azure DevOps Organization")
    project = project or typer.prompt("Azure DevOps Project", default="", show_default=False)

    config = Config(
        selected_organization=organization.strip() or None,
        preferences={"project": project.strip()} if project and project.strip() else {},
    )
    try:
        store.save(config)
    except OSError as e:
        console.print(f"[red]Error: could not write config: {e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"[green]Config file created at {store.path}[/green]")
    console.print("You can now run the 'tui' subcommand to browse variable groups.")
    console.print(
        "Set ADO_ORGANIZATION and ADO_PROJECT to override these values for a single run."
    )


def build_token_provider() -> TokenProvider:
    """Prefer a personal access token from the environment, else the Azure CLI."""
    pat = os.environ.get(PAT_ENV)
    if pat:
        return TokenProvider(PatAuthBridge(pat))
    return TokenProvider(AzureCliAuthBridge())


@app.command()
def tui(
    log_file: str | None = typer.Option(
        None, "--log-file", help="Write logs to this file (defaults to $AZURE_VARS_LOG)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Log at DEBUG level"),
) -> None:
    """Launch the interactive variable group browser."""
    setup_logging(logging.DEBUG if debug else logging.INFO, log_file)

    store = ConfigStore()
    try:
        config = store.load().with_env_overrides()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e.message}[/red]")
        raise typer.Exit(1) from e

    token_provider = build_token_provider()
    try:
        token_provider.token()
    except AuthError as e:
        console.print(f"[red]Authentication error: {e.message}[/red]")
        raise typer.Exit(1) from e

    from azure_vars.tui import AzureVarsApp

    tui_app = AzureVarsApp(AzureDevOpsClient(token_provider), config, store)
    tui_app.run()

    if tui_app.return_code:
        raise typer.Exit(tui_app.return_code)
    try:
        tui_app.save_config()
    except OSError as e:
        console.print(f"[yellow]Warning: could not save config: {e}[/yellow]")


if __name__ == "__main__":
    app()
