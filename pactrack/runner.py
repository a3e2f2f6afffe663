import shlex
import subprocess
from collections.abc import Collection
from dataclasses import dataclass, field

from pactrack.errors import InvalidCommandError, NonZeroExitError, SpawnError

NO_STDERR = '<no stderr>'


@dataclass
class ResolvedCommand:
    """A program and its arguments, ready to execute."""

    program: str
    args: list[str] = field(default_factory=list)

    def argv(self) -> list[str]:
        return [self.program] + self.args

    def shell_join(self) -> str:
        """Quote the full command line the way a shell would read it."""
        return shlex.join(self.argv())


@dataclass
class CommandOutput:
    stdout: str
    stderr: str


def parse_command_string(raw: str) -> ResolvedCommand:
    """Split a configured command string using shell quoting rules."""
    try:
        parts = shlex.split(raw)
    except ValueError as e:
        raise InvalidCommandError(raw) from e

    if not parts:
        raise InvalidCommandError(raw)

    return ResolvedCommand(program=parts[0], args=parts[1:])


def is_allowed(returncode: int | None, allowed_codes: Collection[int]) -> bool:
    """Check an exit code against the allowed set. Signal deaths never pass."""
    if returncode is None or returncode < 0:
        return False
    return returncode in allowed_codes


def run_capture(cmd: ResolvedCommand, allowed_codes: Collection[int]) -> CommandOutput:
    """Run a command to completion and capture its output.

    Raises SpawnError if the program cannot be started and NonZeroExitError
    if it exits with a code outside `allowed_codes` or is killed by a signal.
    """
    try:
        result = subprocess.run(cmd.argv(), capture_output=True)
    except (OSError, ValueError) as e:
        # ValueError: arguments the OS cannot take, such as embedded NUL bytes
        raise SpawnError(cmd.program, e) from e

    stdout = result.stdout.decode('utf-8', errors='replace')
    stderr = result.stderr.decode('utf-8', errors='replace').strip()

    if is_allowed(result.returncode, allowed_codes):
        return CommandOutput(stdout=stdout, stderr=stderr)

    # subprocess reports signal deaths as negative codes
    status = result.returncode if result.returncode >= 0 else -1
    raise NonZeroExitError(
        command=cmd.shell_join(),
        status=status,
        stderr=stderr or NO_STDERR,
    )
