"""
CLI entry point for Pillbox.

This module provides the Typer-based command-line interface for Pillbox.

Commands:
    add     Store a new credential
    list    List all stored credentials
    show    Show a single credential

The CLI is thin: it builds a config, opens an App and prints what the App
returns. All persistence logic lives in the credentials and store modules.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from pillbox import __version__
from pillbox.app import App
from pillbox.errors import NotFoundError, PillboxError
from pillbox.schema import (
    Credential,
    CredentialType,
    HttpMethod,
    NewCredential,
    PillboxConfig,
    load_config,
)

app = typer.Typer(
    name="pillbox",
    help="Store and inspect L402 credentials.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


DbOption = Annotated[
    Optional[Path],
    typer.Option(
        "--db",
        help="Path to the database. Defaults to ~/.pillbox/pillbox.db.",
        resolve_path=True,
    ),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a YAML config file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output in JSON format."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Enable debug logging."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]pillbox[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Pillbox - local store for L402 credentials.
    """
    pass


def _setup_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _build_config(db: Optional[Path], config: Optional[Path]) -> PillboxConfig:
    """Load the config file (if any) and apply --db on top."""
    try:
        cfg = load_config(config) if config else PillboxConfig()
    except Exception as e:
        err_console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    if db is not None:
        cfg = cfg.model_copy(update={"db_path": db})
    return cfg


def _fail(e: PillboxError, json_output: bool, verbose: bool) -> NoReturn:
    if json_output:
        output = {"error": True, **e.to_dict()}
        if verbose:
            output["traceback"] = traceback.format_exc()
        print(json.dumps(output, indent=2, default=str))
    else:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        if verbose:
            err_console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
    raise typer.Exit(code=1)


def _credential_json(credential: Credential) -> dict:
    return credential.model_dump(mode="json")


@app.command()
def add(
    label: Annotated[str, typer.Option("--label", "-l", help="Human-readable label.")],
    location: Annotated[str, typer.Option("--location", help="URL of the paid resource.")],
    macaroon: Annotated[str, typer.Option("--macaroon", help="Hex-encoded macaroon.")] = "",
    preimage: Annotated[str, typer.Option("--preimage", help="Hex-encoded payment preimage.")] = "",
    invoice: Annotated[str, typer.Option("--invoice", help="Lightning payment request.")] = "",
    method: Annotated[
        str,
        typer.Option("--method", "-m", help="Request method: POST, GET, PUT or DELETE."),
    ] = HttpMethod.GET.value,
    credential_type: Annotated[
        str,
        typer.Option("--type", "-t", help="Credential type: file or graphql."),
    ] = CredentialType.FILE.value,
    db: DbOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Store a new credential.

    Example:
        $ pillbox add --label API --location https://example.com/data \\
            --macaroon ab12 --preimage cd34 --invoice lnbc1...
    """
    _setup_logging(verbose)
    cfg = _build_config(db, config)
    new = NewCredential(
        label=label,
        location=location,
        method=method,
        macaroon=macaroon,
        preimage=preimage,
        invoice=invoice,
        type=credential_type,
    )

    try:
        with App.open(cfg) as pillbox:
            credential = pillbox.add_credential(new)
    except PillboxError as e:
        _fail(e, json_output, verbose)

    if json_output:
        print(json.dumps(_credential_json(credential), indent=2))
    else:
        console.print(
            f"[green]✓[/green] Stored credential [bold]{credential.id}[/bold] ({escape(credential.label)})"
        )


@app.command("list")
def list_credentials(
    db: DbOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    List all stored credentials.

    Example:
        $ pillbox list --db pillbox.db
    """
    _setup_logging(verbose)
    cfg = _build_config(db, config)

    try:
        with App.open(cfg) as pillbox:
            credentials = pillbox.list_credentials()
    except PillboxError as e:
        _fail(e, json_output, verbose)

    if json_output:
        print(json.dumps([_credential_json(c) for c in credentials], indent=2))
        return

    if not credentials:
        console.print("[dim]No credentials found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Label")
    table.add_column("Method", width=7)
    table.add_column("Type", width=8)
    table.add_column("Location")
    table.add_column("Created")

    for c in credentials:
        table.add_row(
            str(c.id),
            escape(c.label),
            escape(c.method),
            escape(c.type),
            escape(c.location),
            c.created_at.isoformat()[:19],
        )

    console.print(table)
    console.print(f"[dim]{len(credentials)} credential(s)[/dim]")


@app.command()
def show(
    credential_id: Annotated[int, typer.Argument(help="The credential ID to show.", min=1)],
    db: DbOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Show a single credential, including its macaroon and preimage.

    Example:
        $ pillbox show 1
    """
    _setup_logging(verbose)
    cfg = _build_config(db, config)

    try:
        with App.open(cfg) as pillbox:
            credential = pillbox.get_credential(credential_id)
    except NotFoundError as e:
        if json_output:
            _fail(e, json_output, verbose)
        err_console.print(f"[red]Credential not found: {credential_id}[/red]")
        raise typer.Exit(code=1)
    except PillboxError as e:
        _fail(e, json_output, verbose)

    if json_output:
        print(json.dumps(_credential_json(credential), indent=2))
        return

    console.print(f"[bold]Credential {credential.id}[/bold]")
    console.print(f"  Label: {escape(credential.label)}")
    console.print(f"  Location: {escape(credential.location)}")
    console.print(f"  Method: {escape(credential.method)}")
    console.print(f"  Type: {escape(credential.type)}")
    console.print(f"  Created: {credential.created_at.isoformat()}")
    console.print(f"  Macaroon: {escape(credential.macaroon)}")
    console.print(f"  Preimage: {escape(credential.preimage)}")
    console.print(f"  Invoice: {escape(credential.invoice)}")


if __name__ == "__main__":
    app()
