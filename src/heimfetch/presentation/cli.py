import asyncio
from typing import Optional, cast
import httpx
import typer
from rich.console import Console
from ..application.use_cases import fetch_entities_to_file, fetch_last_id
from ..config import Settings
from ..domain.errors import HeimfetchError
from ..domain.value_types import EntityKind
from ..logging_conf import configure_logging

app = typer.Typer(help="heimfetch: fetch Heimdall checkpoints and milestones by id range.")
console = Console()

_KINDS = ("checkpoints", "milestones")

def _kind(value: str) -> EntityKind:
    if value not in _KINDS:
        raise typer.BadParameter(f"expected one of {', '.join(_KINDS)}")
    return cast(EntityKind, value)

def _bound(value: str) -> int | str:
    return int(value) if value.isdigit() else value

def _run(coro):
    try:
        return asyncio.run(coro)
    except (HeimfetchError, httpx.HTTPError, ValueError) as e:
        console.print(f"[red]error[/]: {e}")
        raise typer.Exit(code=1)

def _settings(**overrides) -> Settings:
    try:
        return Settings.from_env().override(**overrides)
    except ValueError as e:
        console.print(f"[red]error[/]: invalid HEIMFETCH_* setting: {e}")
        raise typer.Exit(code=1)

@app.command("last-id")
def last_id(
    kind: str = typer.Argument(..., callback=_kind, help="checkpoints | milestones"),
    heimdall_url: Optional[str] = typer.Option(None, help="Heimdall REST base URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Print the highest known id for KIND."""
    settings = _settings(heimdall_url=heimdall_url, verbose=verbose or None)
    configure_logging(settings.verbose)
    typer.echo(_run(fetch_last_id(
        heimdall_url=settings.heimdall_url, kind=kind,
        timeout_s=settings.timeout_s, max_conn=settings.max_conn,
    )))

@app.command()
def fetch(
    kind: str = typer.Argument(..., callback=_kind, help="checkpoints | milestones"),
    start: str = typer.Argument(..., help="first id (or 'earliest')"),
    end: str = typer.Argument(..., help="last id (or 'latest')"),
    out: str = typer.Option("entities.jsonl", help="*.parquet for Parquet, JSONL otherwise"),
    heimdall_url: Optional[str] = typer.Option(None, help="Heimdall REST base URL"),
    timeout_s: Optional[float] = typer.Option(None, help="HTTP timeout in seconds"),
    max_conn: Optional[int] = typer.Option(None, help="HTTP connection pool size"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Fetch ids START..END of KIND (inclusive) and write them to OUT."""
    settings = _settings(
        heimdall_url=heimdall_url, timeout_s=timeout_s, max_conn=max_conn, verbose=verbose or None,
    )
    configure_logging(settings.verbose)
    res = _run(fetch_entities_to_file(
        heimdall_url=settings.heimdall_url, kind=kind,
        start=_bound(start), end=_bound(end), out_path=out,
        timeout_s=settings.timeout_s, max_conn=settings.max_conn,
    ))
    console.print(
        f"[bold]done[/]: {kind} {res['start']:,}-{res['end']:,} • "
        f"[green]fetched[/]={res['fetched']} [green]written[/]={res['written']} → {out}"
    )

if __name__ == "__main__":
    app()
