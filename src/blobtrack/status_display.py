"""Display logic for the status command."""

from rich.console import Console
from rich.markup import escape

from .core import StatusResult


def display_status(result: StatusResult, console: Console) -> None:
    """Render a status result in the familiar staged/unstaged/untracked layout.

    Args:
        result: Classification computed by ``ops.status``
        console: Rich console for output
    """
    if result.branch:
        console.print(f"On branch [bold]{escape(result.branch)}[/bold]")

    if result.is_empty:
        console.print("\nNo changes (working tree empty and nothing staged)")
        return

    if result.staged:
        console.print("\nChanges to be committed:")
        for path in sorted(result.staged):
            console.print(f"  [green]new file:   {escape(path)}[/green]")

    if result.has_unstaged_changes:
        console.print("\nChanges not staged for commit:")
        console.print('[dim]  (use "blobtrack add <file>..." to update what will be committed)[/dim]')
        for path in result.modified:
            console.print(f"  [red]modified:   {escape(path)}[/red]")
        for path in result.deleted:
            console.print(f"  [red]deleted:    {escape(path)}[/red]")

    if result.untracked:
        console.print("\nUntracked files:")
        console.print('[dim]  (use "blobtrack add <file>..." to include in what will be committed)[/dim]')
        for path in result.untracked:
            console.print(f"  [red]{escape(path)}[/red]")

    if not result.has_unstaged_changes and not result.untracked:
        console.print("\n[dim]Working tree matches the index[/dim]")
