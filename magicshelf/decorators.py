"""Decorators for magicshelf CLI commands."""

import functools
import logging
from typing import Any, Callable

import typer
from rich.console import Console

logger = logging.getLogger(__name__)
console = Console()


def handle_cli_errors(func: Callable) -> Callable:
    """
    Decorator to handle common errors of CLI commands.

    Centralizes error handling for:
    - FileNotFoundError: Books or rules file doesn't exist
    - ValueError: Undecodable file or invalid rule tree
    - General exceptions: Unexpected errors
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except FileNotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {e}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=1)

    return wrapper
