"""Shell commands for viewing and applying updates in a terminal."""

import logging
import os
import shlex
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path

from pactrack.checks import custom_official_command
from pactrack.config import EffectiveConfig
from pactrack.constants import AUTO, TERMINAL_FALLBACKS
from pactrack.errors import InvalidCommandError, SpawnError
from pactrack.helpers import AurHelper, has_binary
from pactrack.runner import parse_command_string
from pactrack.scheduler import SchedulerCommand, SchedulerHandle

log = logging.getLogger(__name__)

PRESS_ANY_KEY = "read -n 1 -s -r -p 'Press any key to close...'"


def build_details_shell_command(config: EffectiveConfig, helper: AurHelper | None) -> str:
    """Command that lists pending updates and waits for a key press."""
    pieces = []

    if config.official_check_cmd == AUTO:
        pieces.append('pacman -Qu --color never')
    else:
        pieces.append(custom_official_command(config.official_check_cmd).shell_join())

    if config.enable_aur:
        pieces.append('echo')
        if helper:
            pieces.append(f'{helper.binary} -Qua')
        else:
            pieces.append("echo 'AUR helper not found (expected paru or yay)'")

    pieces.append('echo')
    pieces.append(PRESS_ANY_KEY)
    return '; '.join(pieces)


def build_upgrade_shell_command(config: EffectiveConfig, helper: AurHelper | None) -> str:
    if config.upgrade_cmd != AUTO:
        return config.upgrade_cmd
    if helper:
        return f'{helper.binary} -Syu'
    return build_upgrade_official_shell_command()


def build_upgrade_official_shell_command() -> str:
    return 'sudo pacman -Syu'


def build_upgrade_aur_shell_command(helper: AurHelper | None) -> str | None:
    if helper is None:
        return None
    return f'{helper.binary} -Sua'


@dataclass
class TerminalSpec:
    program: str
    args: list[str] = field(default_factory=list)
    exec_delimiter: str = '-e'

    def argv(self, shell_command: str) -> list[str]:
        return [self.program] + self.args + [self.exec_delimiter, 'bash', '-lc', shell_command]


def terminal_exec_delimiter(program_name: str) -> str:
    if program_name == 'gnome-terminal':
        return '--'
    return '-e'


def parse_terminal_spec(raw: str) -> TerminalSpec:
    cmd = parse_command_string(raw)
    return TerminalSpec(
        program=cmd.program,
        args=cmd.args,
        exec_delimiter=terminal_exec_delimiter(Path(cmd.program).name),
    )


def resolve_terminal(
    configured: str,
    env_terminal: str | None = None,
    search_path: str | None = None,
) -> TerminalSpec | None:
    """Pick a terminal: configured, then $TERMINAL, then a known one on PATH."""
    if configured != AUTO:
        try:
            return parse_terminal_spec(configured)
        except InvalidCommandError:
            return None

    if env_terminal:
        try:
            return parse_terminal_spec(env_terminal)
        except InvalidCommandError:
            log.warning(f'failed to parse TERMINAL={env_terminal}, falling back to defaults')

    for candidate in TERMINAL_FALLBACKS:
        if has_binary(candidate, search_path):
            return TerminalSpec(program=candidate, exec_delimiter=terminal_exec_delimiter(candidate))

    return None


def launch_in_terminal(config: EffectiveConfig, shell_command: str) -> subprocess.Popen:
    """Start `shell_command` in a terminal window without waiting for it."""
    terminal = resolve_terminal(
        config.terminal,
        os.environ.get('TERMINAL'),
        os.environ.get('PATH'),
    )
    if terminal is None:
        raise InvalidCommandError('no supported terminal found (set terminal in config)')

    argv = terminal.argv(shell_command)
    log.debug(f'launching {shlex.join(argv)}')
    try:
        return subprocess.Popen(argv)
    except (OSError, ValueError) as e:
        raise SpawnError(terminal.program, e) from e


def queue_refresh_when_process_exits(process: subprocess.Popen, scheduler: SchedulerHandle) -> threading.Thread:
    """Ask the scheduler for a fresh check once `process` has exited."""

    def wait_and_refresh():
        process.wait()
        if not scheduler.send(SchedulerCommand.REFRESH_NOW):
            log.debug('failed to queue refresh after upgrade completion')

    thread = threading.Thread(target=wait_and_refresh, name='pactrack-upgrade-wait', daemon=True)
    thread.start()
    return thread
