class CommandError(Exception):
    """Base class for failures while checking for updates."""


class SpawnError(CommandError):
    """The OS could not start a program."""

    def __init__(self, program: str, source: Exception):
        self.program = program
        self.source = source
        super().__init__(f'failed to spawn `{program}`: {source}')


class NonZeroExitError(CommandError):
    """A program ran but its exit code is not in the allowed set."""

    def __init__(self, command: str, status: int, stderr: str):
        self.command = command
        self.status = status
        self.stderr = stderr
        super().__init__(f'command `{command}` exited with {status}: {stderr}')


class InvalidCommandError(CommandError):
    """A configured command string is empty or cannot be tokenized."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f'invalid configured command `{raw}`')


class FilesystemError(CommandError):
    """A directory or symlink operation failed."""

    def __init__(self, context: str, source: OSError):
        self.context = context
        self.source = source
        super().__init__(f'failed filesystem operation ({context}): {source}')


class ConfigError(Exception):
    """The configuration file could not be read or is invalid."""
