"""Scratch copy of the pacman sync database.

Pending official updates are found the way `checkupdates` does it: the sync
databases are refreshed into a user-writable directory whose `local` entry is
a symlink to the real local database, and `pacman -Qu` is pointed at it. The
live database is never written.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pactrack.constants import DB_LOCK_NAME, DEFAULT_DBPATH, DEFAULT_TMPDIR, DEFAULT_UID
from pactrack.errors import CommandError, FilesystemError
from pactrack.runner import CommandOutput, ResolvedCommand, run_capture

log = logging.getLogger(__name__)


def checkupdates_db_path() -> Path:
    """Resolve the scratch database path from the process environment."""
    uid = os.environ.get('UID') or str(os.getuid())
    return checkupdates_db_path_from_inputs(
        os.environ.get('CHECKUPDATES_DB'),
        os.environ.get('TMPDIR'),
        uid,
    )


def checkupdates_db_path_from_inputs(
    checkupdates_db: str | None,
    tmpdir: str | None,
    uid: str | None,
) -> Path:
    if checkupdates_db and checkupdates_db.strip():
        return Path(checkupdates_db.strip())

    if not tmpdir or not tmpdir.strip():
        tmpdir = DEFAULT_TMPDIR
    if not uid or not uid.strip():
        uid = DEFAULT_UID
    return Path(tmpdir) / f'checkup-db-{uid}'


def resolve_pacman_db_path() -> Path:
    """Ask pacman-conf for DBPath, falling back to the stock location."""
    cmd = ResolvedCommand('pacman-conf', ['DBPath'])
    try:
        output = run_capture(cmd, [0])
    except CommandError as e:
        log.warning(f'failed to read DBPath via pacman-conf ({e}); using {DEFAULT_DBPATH}')
        return Path(DEFAULT_DBPATH)

    for line in output.stdout.splitlines():
        line = line.strip()
        if line:
            path = Path(line)
            return path if path.is_dir() else Path(DEFAULT_DBPATH)
    return Path(DEFAULT_DBPATH)


def prepare_checkupdates_db(db_path: Path, real_db_path: Path | None = None):
    """Create the scratch directory and link in the real local database."""
    try:
        db_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f'create temp pacman db at {db_path}', e) from e

    if real_db_path is None:
        real_db_path = resolve_pacman_db_path()
    src_local = real_db_path / 'local'
    dst_local = db_path / 'local'

    if dst_local.is_symlink() or dst_local.exists():
        return

    try:
        dst_local.symlink_to(src_local)
    except OSError as e:
        raise FilesystemError(f'symlink local db from {src_local} to {dst_local}', e) from e


@contextmanager
def db_lock(db_path: Path) -> Iterator[Path]:
    """Hold the scratch database lock for the duration of the block.

    pacman creates the lock file itself while syncing; whatever is left
    behind is removed on exit, whether the block succeeded or not.
    """
    lock_file = db_path / DB_LOCK_NAME
    try:
        yield lock_file
    finally:
        try:
            lock_file.unlink()
        except OSError:
            pass


def sync_checkupdates_db(db_path: Path):
    """Refresh the sync databases into the scratch directory."""
    cmd = ResolvedCommand(
        'fakeroot',
        [
            '--',
            'pacman',
            '-Sy',
            '--disable-sandbox-filesystem',
            '--dbpath',
            str(db_path),
            '--logfile',
            '/dev/null',
        ],
    )
    run_capture(cmd, [0])


def query_official_updates(db_path: Path) -> CommandOutput:
    """List upgradable packages against the scratch database.

    pacman exits 1 when there is nothing to upgrade.
    """
    cmd = ResolvedCommand('pacman', ['-Qu', '--dbpath', str(db_path), '--color', 'never'])
    return run_capture(cmd, [0, 1])


def filter_pacman_qu_output(stdout: str) -> str:
    """Drop blank lines and bracketed annotations such as `[ignored]`."""
    kept = []
    for line in stdout.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue
        if '[' in trimmed and ']' in trimmed:
            continue
        kept.append(line)
    return '\n'.join(kept)


def fetch_official_updates(db_path: Path | None = None) -> str:
    """Prepare, sync and query the scratch database. Returns filtered output."""
    db_path = db_path or checkupdates_db_path()
    prepare_checkupdates_db(db_path)

    with db_lock(db_path):
        sync_checkupdates_db(db_path)
        output = query_official_updates(db_path)

    return filter_pacman_qu_output(output.stdout)
