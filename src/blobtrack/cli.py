"""CLI for blobtrack."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .context import RepositoryContext
from .errors import AlreadyInitializedError, NotARepositoryError, TrackerError
from .ops import (
    add as ops_add,
    cat_object,
    compact_index,
    hash_object as ops_hash_object,
    init_repository,
    list_staged,
    status as ops_status,
)
from .status_display import display_status


app = typer.Typer(help="""\
Content-addressed file tracker. Stage file snapshots by content hash
and see how the working tree has drifted from what is staged.""")

console = Console()
err_console = Console(stderr=True)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(e: Exception) -> None:
    """Print an error the way every command reports them, then exit 1."""
    err_console.print(f"[red]✗[/red] {escape(str(e))}", soft_wrap=True)
    raise typer.Exit(1)


def require_repository() -> RepositoryContext:
    """Ensure we are inside a repository and return its context.

    Raises:
        typer.Exit: If not in a repository
    """
    try:
        return RepositoryContext()
    except NotARepositoryError as e:
        err_console.print(f"[red]✗[/red] {escape(str(e))}", soft_wrap=True)
        err_console.print()
        err_console.print("To initialize a new repository, run:")
        err_console.print("  [cyan]blobtrack init[/cyan]")
        raise typer.Exit(1)


@app.command()
def init(
    path: Optional[str] = typer.Argument(None, help="Directory to initialize (default: current directory)"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Name of the initial branch"),
):
    """Initialize a repository.

    Examples:
        blobtrack init               # Initialize current directory
        blobtrack init my-project    # Create and initialize a new directory
    """
    try:
        ctx = init_repository(path, branch=branch)
    except AlreadyInitializedError as e:
        err_console.print(f"[red]error:[/red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(1)
    except TrackerError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Initialized empty blobtrack repository in {escape(str(ctx.storage_dir))}")


@app.command()
def add(
    files: List[Path] = typer.Argument(..., help="Files to stage ('.' at the root stages everything)"),
    keep_going: bool = typer.Option(
        False, "--keep-going", "-k", help="With '.', skip files that can't be staged instead of stopping"
    ),
):
    """Stage file contents.

    Respects .blobtrackignore; ignored files are skipped silently.

    Examples:
        blobtrack add notes.txt       # Stage a single file
        blobtrack add .               # Stage every non-ignored file
        blobtrack add . --keep-going  # Report unreadable files and carry on
    """
    ctx = require_repository()

    try:
        result = ops_add(ctx, files, fail_fast=False if keep_going else None)
    except TrackerError as e:
        _fail(e)

    if result.added:
        console.print(f"[green]✓[/green] Staged {len(result.added)} files:")
        for entry in result.added:
            console.print(f"  [green]+[/green] {escape(entry.path)} [dim]{entry.address[:12]}[/dim]")

    if result.skipped_ignored:
        console.print("[dim]Skipped ignored paths:[/dim]")
        for path in result.skipped_ignored:
            console.print(f"  [dim]{escape(path)}[/dim]")

    if not result.ok:
        err_console.print(f"[yellow]⚠[/yellow] {len(result.failed)} files could not be staged:")
        for failure in result.failed:
            err_console.print(f"  [red]✗[/red] {escape(failure.path)}: {escape(failure.error)}")
        raise typer.Exit(1)

    if not result.added and not result.skipped_ignored:
        console.print("[yellow]No files added[/yellow]")


@app.command()
def status():
    """Show staged, modified, deleted and untracked files.

    Examples:
        blobtrack status
    """
    ctx = require_repository()

    try:
        result = ops_status(ctx)
    except TrackerError as e:
        _fail(e)

    display_status(result, console)


@app.command("ls-files")
def ls_files():
    """List staged paths with their content addresses."""
    ctx = require_repository()

    try:
        staged = list_staged(ctx)
    except TrackerError as e:
        _fail(e)

    for path in sorted(staged):
        console.print(f"{staged[path]} {escape(path)}", highlight=False, soft_wrap=True)


@app.command("hash-object")
def hash_object(
    file: Path = typer.Argument(..., help="File to hash"),
    write: bool = typer.Option(False, "--write", "-w", help="Also store the object in the repository"),
):
    """Compute a file's content address.

    Examples:
        blobtrack hash-object data.csv      # Print the address only
        blobtrack hash-object -w data.csv   # Print and store
    """
    ctx = require_repository() if write else None

    try:
        address = ops_hash_object(file, ctx)
    except TrackerError as e:
        _fail(e)

    console.print(address, highlight=False, soft_wrap=True)


@app.command("cat-object")
def cat_object_cmd(
    address: str = typer.Argument(..., help="Content address of a stored object"),
):
    """Write a stored object's raw bytes to stdout."""
    ctx = require_repository()

    try:
        payload = cat_object(ctx, address)
    except (TrackerError, ValueError) as e:
        _fail(e)

    sys.stdout.buffer.write(payload)
    sys.stdout.flush()


@app.command()
def compact():
    """Rewrite the index to one record per path."""
    ctx = require_repository()

    try:
        dropped = compact_index(ctx)
    except TrackerError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Compacted index ({dropped} superseded records dropped)")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
