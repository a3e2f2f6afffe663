"""Background loop that runs update checks and publishes state.

The loop owns the current state. Other threads talk to it only through two
queues: commands go in, `SchedulerUpdate` items come out.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pactrack.checks import perform_check
from pactrack.config import EffectiveConfig
from pactrack.errors import CommandError
from pactrack.helpers import AurHelper
from pactrack.state import AppState, UpdateSnapshot

log = logging.getLogger(__name__)


class SchedulerCommand(Enum):
    REFRESH_NOW = 'refresh-now'
    QUIT = 'quit'


@dataclass(frozen=True)
class SchedulerUpdate:
    state: AppState
    snapshot: UpdateSnapshot | None = None
    helper: AurHelper | None = None


# Put on the command queue when the last sender goes away
_DISCONNECTED = object()


class SchedulerHandle:
    """Sending side of a running scheduler."""

    def __init__(self, commands: queue.Queue, thread: threading.Thread):
        self._commands = commands
        self._thread = thread
        self._closed = False

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def send(self, command: SchedulerCommand) -> bool:
        """Queue a command. Returns False if the scheduler is gone."""
        if self._closed or not self._thread.is_alive():
            log.debug(f'scheduler stopped, dropping {command.value} command')
            return False
        self._commands.put(command)
        return True

    def close(self):
        """Stop sending commands. The loop exits once it sees this."""
        if not self._closed:
            self._closed = True
            self._commands.put(_DISCONNECTED)

    def join(self, timeout: float | None = None) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()


def start_scheduler(config: EffectiveConfig, updates: queue.Queue) -> SchedulerHandle:
    """Run the scheduler on a daemon thread and return a handle to command it."""
    commands = queue.Queue()
    thread = threading.Thread(
        target=run_scheduler,
        args=(config, commands, updates),
        name='pactrack-scheduler',
        daemon=True,
    )
    thread.start()
    return SchedulerHandle(commands, thread)


class _Cycle:
    """Baseline state carried from one check to the next."""

    def __init__(self, config: EffectiveConfig, updates: queue.Queue):
        self.config = config
        self.updates = updates
        self.last_state = AppState()
        self.last_helper: AurHelper | None = None

    def publish(self, update: SchedulerUpdate):
        try:
            self.updates.put_nowait(update)
        except queue.Full:
            log.debug('update queue full, dropping state update')

    def run_once(self, trigger: str):
        self.publish(SchedulerUpdate(state=self.last_state.with_checking(), helper=self.last_helper))

        log.info(f'running update check ({trigger})')
        checked_at = datetime.now().astimezone()

        try:
            outcome = perform_check(self.config)
        except CommandError as e:
            log.warning(f'update check failed: {e}')
            self.last_state = self.last_state.with_error(str(e), checked_at)
            self.publish(SchedulerUpdate(state=self.last_state, helper=self.last_helper))
            return

        self.last_state = AppState.from_snapshot(outcome.snapshot, checked_at)
        self.last_helper = outcome.helper
        self.publish(
            SchedulerUpdate(
                state=self.last_state,
                snapshot=outcome.snapshot,
                helper=outcome.helper,
            )
        )


def run_scheduler(config: EffectiveConfig, commands: queue.Queue, updates: queue.Queue):
    """Check on startup, then on every command or poll interval until told to quit."""
    cycle = _Cycle(config, updates)
    cycle.run_once('startup')

    while True:
        try:
            command = commands.get(timeout=config.poll_seconds)
        except queue.Empty:
            cycle.run_once('periodic')
            continue

        if command is SchedulerCommand.REFRESH_NOW:
            cycle.run_once('manual-refresh')
        elif command is SchedulerCommand.QUIT:
            log.info('scheduler received quit command')
            break
        elif command is _DISCONNECTED:
            log.debug('scheduler command channel disconnected')
            break
