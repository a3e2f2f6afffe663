import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()

_HANDLER_TAG = '_pactrack_handler'


def info(msg: str):
    console.print(msg)


def success(msg: str):
    console.print(f'[green]✓[/green] {msg}')


def warning(msg: str):
    console.print(f'[yellow]![/yellow] {msg}')


def error(msg: str):
    console.print(f'[red]✗[/red] {msg}')


def header(msg: str):
    console.print(f'\n[bold]{msg}[/bold]')


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Route pactrack log records to stderr through rich."""
    logger = logging.getLogger('pactrack')
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter('%(message)s'))
    setattr(handler, _HANDLER_TAG, True)
    logger.addHandler(handler)
    return logger
