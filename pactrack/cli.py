import queue
import time
from pathlib import Path

import typer
from rich.markup import escape

from pactrack import __version__
from pactrack.actions import (
    build_details_shell_command,
    build_upgrade_aur_shell_command,
    build_upgrade_official_shell_command,
    build_upgrade_shell_command,
    launch_in_terminal,
    queue_refresh_when_process_exits,
)
from pactrack.checks import CheckOutcome, perform_check
from pactrack.config import CliOverrides, EffectiveConfig, default_config_path, load_config, save_config
from pactrack.errors import CommandError, ConfigError
from pactrack.helpers import detect_aur_helper
from pactrack.output import error, header, info, setup_logging, success, warning
from pactrack.scheduler import SchedulerCommand, SchedulerHandle, SchedulerUpdate, start_scheduler
from pactrack.state import AppState, Status

POLL_INTERVAL = 0.35
MAX_ERROR_LEN = 72

app = typer.Typer(
    name='pactrack',
    help='Arch Linux package update tracker',
    context_settings={
        'help_option_names': ['--help', '-h'],
    },
)


def version_callback(value: bool):
    if value:
        typer.echo(f'pactrack {__version__}')
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, '--version', '-v', callback=version_callback, is_eager=True, help='Show version'
    ),
):
    """Arch Linux package update tracker."""
    pass


def load_config_or_exit(
    config_path: Path | None,
    poll_minutes: int | None = None,
    no_aur: bool = False,
    verbose: bool = False,
) -> EffectiveConfig:
    """Set up logging and load config, exiting with code 2 on bad config."""
    log = setup_logging(verbose)
    try:
        config, path = load_config(config_path, CliOverrides(poll_minutes=poll_minutes, no_aur=no_aur))
    except ConfigError as e:
        error(escape(str(e)))
        raise typer.Exit(2)
    log.info(f'using config path: {path}')
    return config


def truncate_error(msg: str) -> str:
    if len(msg) <= MAX_ERROR_LEN:
        return msg
    return msg[:MAX_ERROR_LEN] + '...'


def status_text(state: AppState) -> str:
    if state.status == Status.CHECKING:
        return 'checking'
    if state.status == Status.UP_TO_DATE:
        return 'up to date'
    if state.status == Status.UPDATES_AVAILABLE:
        return f'{state.total_count} updates available'
    if state.status == Status.ERROR:
        return f'error ({truncate_error(state.last_error or "unknown error")})'
    raise ValueError(f'unhandled status: {state.status}')


def print_state(state: AppState):
    checked = state.last_checked.strftime('%Y-%m-%d %H:%M:%S') if state.last_checked else 'never'
    line = (
        f'Status: {status_text(state)} | official {state.official_count}, '
        f'AUR {state.aur_count} | last check: {checked}'
    )
    if state.status == Status.ERROR:
        error(escape(line))
    elif state.status == Status.UPDATES_AVAILABLE:
        warning(line)
    elif state.status == Status.UP_TO_DATE:
        success(line)
    else:
        info(line)


def print_outcome(outcome: CheckOutcome, list_updates: bool):
    snapshot = outcome.snapshot
    info(f'official updates: {len(snapshot.official)}')
    info(f'aur updates: {len(snapshot.aur)}')
    info(f'total updates: {snapshot.total_count}')
    if outcome.helper:
        info(f'detected aur helper: {outcome.helper}')

    if not list_updates:
        return

    for title, updates in [('Official:', snapshot.official), ('AUR:', snapshot.aur)]:
        if updates:
            header(title)
            for update in updates:
                info(f'  {update.name} {update.current} -> {update.latest}')


@app.command()
def init(
    config_path: Path = typer.Option(None, '--config', '-c', help='Config file path'),
    force: bool = typer.Option(False, '--force', '-f', help='Overwrite an existing config'),
):
    """Write a config file with the default settings."""
    path = config_path or default_config_path()
    if path.exists() and not force:
        info(f'Config already exists: {path}')
        return

    save_config(path, EffectiveConfig())
    success(f'Created {path}')


@app.command()
def check(
    config_path: Path = typer.Option(None, '--config', '-c', help='Config file path'),
    no_aur: bool = typer.Option(False, '--no-aur', help='Skip AUR checks'),
    list_updates: bool = typer.Option(False, '--list', '-l', help='List each pending update'),
    verbose: bool = typer.Option(False, '--verbose', help='Show debug logging'),
):
    """Check for updates once and print the counts."""
    config = load_config_or_exit(config_path, no_aur=no_aur, verbose=verbose)

    try:
        outcome = perform_check(config)
    except CommandError as e:
        error(f'one-shot check failed: {escape(str(e))}')
        raise typer.Exit(1)

    print_outcome(outcome, list_updates)


@app.command()
def watch(
    config_path: Path = typer.Option(None, '--config', '-c', help='Config file path'),
    poll_minutes: int = typer.Option(None, '--poll-minutes', '-p', help='Minutes between checks'),
    no_aur: bool = typer.Option(False, '--no-aur', help='Skip AUR checks'),
    verbose: bool = typer.Option(False, '--verbose', help='Show debug logging'),
):
    """Check periodically and print every state change. Ctrl-C to stop."""
    config = load_config_or_exit(config_path, poll_minutes, no_aur, verbose)

    updates: queue.Queue[SchedulerUpdate] = queue.Queue()
    scheduler = start_scheduler(config, updates)
    follow_updates(config, scheduler, updates)


def follow_updates(config: EffectiveConfig, scheduler: SchedulerHandle, updates: queue.Queue):
    """Print scheduler updates until it stops or Ctrl-C, then tell it to quit."""
    info(f'Checking every {config.poll_seconds // 60} minute(s)')

    previous_total = None
    try:
        while scheduler.running or not updates.empty():
            try:
                update = updates.get_nowait()
            except queue.Empty:
                time.sleep(POLL_INTERVAL)
                continue

            print_state(update.state)
            if update.state.status == Status.CHECKING:
                continue
            if config.notify_on_change and previous_total is not None and previous_total != update.state.total_count:
                header(f'Pending updates changed from {previous_total} to {update.state.total_count}')
            previous_total = update.state.total_count
    except KeyboardInterrupt:
        info('Stopping')
    finally:
        scheduler.send(SchedulerCommand.QUIT)
        scheduler.close()


@app.command()
def details(
    config_path: Path = typer.Option(None, '--config', '-c', help='Config file path'),
    verbose: bool = typer.Option(False, '--verbose', help='Show debug logging'),
):
    """Open a terminal listing pending updates."""
    config = load_config_or_exit(config_path, verbose=verbose)
    helper = detect_aur_helper(config.aur_helper, config.enable_aur)

    try:
        launch_in_terminal(config, build_details_shell_command(config, helper))
    except CommandError as e:
        error(f'failed to open details terminal: {escape(str(e))}')
        raise typer.Exit(1)
    success('Opened details terminal')


@app.command()
def upgrade(
    config_path: Path = typer.Option(None, '--config', '-c', help='Config file path'),
    official: bool = typer.Option(False, '--official', help='Upgrade official packages only'),
    aur: bool = typer.Option(False, '--aur', help='Upgrade AUR packages only'),
    no_check: bool = typer.Option(False, '--no-check', help='Skip the check after upgrading'),
    watch_after: bool = typer.Option(
        False, '--watch', '-w', help='Keep watching, refreshing once the upgrade terminal closes'
    ),
    verbose: bool = typer.Option(False, '--verbose', help='Show debug logging'),
):
    """Run the upgrade in a terminal, then check again."""
    if official and aur:
        error('--official and --aur are mutually exclusive')
        raise typer.Exit(1)

    config = load_config_or_exit(config_path, verbose=verbose)
    helper = detect_aur_helper(config.aur_helper, config.enable_aur)

    if official:
        command = build_upgrade_official_shell_command()
    elif aur:
        command = build_upgrade_aur_shell_command(helper)
        if command is None:
            error('cannot run AUR upgrade: AUR helper not detected')
            raise typer.Exit(1)
    else:
        command = build_upgrade_shell_command(config, helper)

    info(f'Running: {escape(command)}')
    try:
        process = launch_in_terminal(config, command)
    except CommandError as e:
        error(f'failed to open upgrade terminal: {escape(str(e))}')
        raise typer.Exit(1)

    if watch_after:
        updates: queue.Queue[SchedulerUpdate] = queue.Queue()
        scheduler = start_scheduler(config, updates)
        queue_refresh_when_process_exits(process, scheduler)
        follow_updates(config, scheduler, updates)
        return

    process.wait()

    if no_check:
        return

    try:
        outcome = perform_check(config)
    except CommandError as e:
        error(f'check after upgrade failed: {escape(str(e))}')
        raise typer.Exit(1)
    print_outcome(outcome, list_updates=True)


if __name__ == '__main__':
    app()
