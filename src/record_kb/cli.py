from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from .application.use_cases.index_service import IndexService
from .composition import build_index_service
from .config import get_settings
from .domain.context import format_context
from .exceptions import ConfigurationError, StoreError, ValidationError
from .logging_setup import setup_logging

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Record knowledge base tools")
console = Console()


@contextmanager
def _exit_on_error() -> Iterator[None]:
    try:
        yield
    except (ValidationError, ConfigurationError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from e
    except StoreError as e:
        # Distinct from "no matches": the store could not be read or written
        typer.secho(f"Store error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=3) from e


@app.callback()
def main_options(
    ctx: typer.Context,
    backend: str = typer.Option(None, help="Store backend: json | chroma."),
    store_path: Path = typer.Option(None, help="JSON store file."),  # noqa: B008
    chroma_dir: Path = typer.Option(None, help="Directory to persist the Chroma DB."),  # noqa: B008
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Shared store options; resolved lazily so --help never touches the store."""
    overrides: dict[str, Any] = {}
    if backend:
        overrides["store_backend"] = backend.strip().lower()
    if store_path:
        overrides["store_path"] = store_path
    if chroma_dir:
        overrides["chroma_dir"] = chroma_dir
    ctx.obj = {"overrides": overrides, "verbose": verbose}


def _service(ctx: typer.Context, *, quiet: bool = False) -> IndexService:
    opts = ctx.obj or {}
    base = get_settings()
    if opts.get("verbose"):
        level: int | str = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = base.log_level
    setup_logging(level)
    overrides = opts.get("overrides") or {}
    cfg = base.model_copy(update=overrides) if overrides else base
    return build_index_service(cfg)


def _run(ctx: typer.Context, fn: Callable[[IndexService], Any], *, quiet: bool = False) -> Any:
    with _exit_on_error():
        return fn(_service(ctx, quiet=quiet))


def _emit_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")


@app.command("ingest")
def ingest_cmd(
    ctx: typer.Context,
    owner: str = typer.Argument(..., help="Owner (user id) of the record."),
    file: Path = typer.Argument(None, help="UTF-8 text file to ingest."),  # noqa: B008
    text: str = typer.Option(None, "--text", "-t", help="Inline record text."),
) -> None:
    """Chunk a record and store it for OWNER."""
    if file is not None and text is not None:
        typer.secho("Error: pass either FILE or --text, not both", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)
    if file is not None:
        try:
            body = file.read_text(encoding="utf-8")
        except OSError as e:
            typer.secho(f"Error: cannot read {file}: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=2) from e
    else:
        body = text or ""

    chunks = _run(ctx, lambda svc: svc.ingest(owner, body))
    typer.echo(f"OK: {len(chunks)} chunk(s) stored for {owner}")


@app.command("query")
def query_cmd(
    ctx: typer.Context,
    owner: str = typer.Argument(..., help="Owner whose records are searched."),
    query: str = typer.Argument(..., help="Query text."),
    k: int = typer.Option(None, "--k", "-k", help="Number of hits (default from settings)."),
    as_json: bool = typer.Option(False, "--json", help="Print hits as JSON."),
) -> None:
    """Rank OWNER's chunks against QUERY."""
    top_k = k if k is not None else get_settings().top_k
    hits = _run(ctx, lambda svc: svc.retrieve(owner, query, top_k), quiet=as_json)

    if as_json:
        _emit_json(
            [{"index": i, "id": h.id, "score": h.score, "text": h.text} for i, h in enumerate(hits, 1)]
        )
        return
    if not hits:
        typer.echo("No matches.")
        return
    for i, h in enumerate(hits, start=1):
        typer.echo(f"[{i}] score={h.score:.3f}  {h.id}")
        line = h.text.strip().replace("\n", " ")
        if len(line) > 600:
            line = line[:600] + "..."
        typer.echo(line)
        typer.echo("-" * 80)


@app.command("summary")
def summary_cmd(
    ctx: typer.Context,
    owner: str = typer.Argument(..., help="Owner to summarise."),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
) -> None:
    """Show how many chunks OWNER has and the most recent ones."""
    summary = _run(ctx, lambda svc: svc.summarize(owner), quiet=as_json)

    if as_json:
        _emit_json(
            {
                "owner": summary.owner,
                "total_chunks": summary.total_chunks,
                "latest_chunks": [
                    {"id": c.id, "text": c.text, "created_at": c.created_at.isoformat()}
                    for c in summary.latest_chunks
                ],
            }
        )
        return
    typer.echo(f"{summary.owner}: {summary.total_chunks} chunk(s)")
    if not summary.latest_chunks:
        return
    table = Table("created_at", "id", "text")
    for c in summary.latest_chunks:
        table.add_row(c.created_at.isoformat(timespec="seconds"), c.id, c.short(80))
    console.print(table)


@app.command("context")
def context_cmd(
    ctx: typer.Context,
    owner: str = typer.Argument(..., help="Owner whose records are searched."),
    query: str = typer.Argument(..., help="Question the context is built for."),
    k: int = typer.Option(None, "--k", "-k", help="Number of hits (default from settings)."),
) -> None:
    """Print retrieval hits formatted as prompt context."""
    top_k = k if k is not None else get_settings().top_k
    hits = _run(ctx, lambda svc: svc.retrieve(owner, query, top_k), quiet=True)
    typer.echo(format_context(hits))


def main() -> int:
    app()
    return 0


if __name__ == "__main__":
    sys.exit(main())
