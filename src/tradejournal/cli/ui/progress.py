"""Progress bar utilities for CLI."""

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TimeElapsedColumn


def create_import_progress(console: Console) -> Progress:
    """
    Create a Rich Progress instance for bulk imports.

    The task total is 100; completed is driven by ImportProgress.progress.

    Args:
        console: Rich Console instance

    Returns:
        Configured Progress instance
    """
    return Progress(
        SpinnerColumn(),
        "[progress.description]{task.description}",
        BarColumn(),
        TaskProgressColumn(),
        "[dim]{task.fields[counts]}[/dim]",
        TimeElapsedColumn(),
        console=console,
    )
