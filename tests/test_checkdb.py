from pathlib import Path

import pytest

from pactrack import checkdb
from pactrack.checkdb import (
    checkupdates_db_path,
    checkupdates_db_path_from_inputs,
    db_lock,
    fetch_official_updates,
    filter_pacman_qu_output,
    prepare_checkupdates_db,
    resolve_pacman_db_path,
)
from pactrack.errors import FilesystemError, NonZeroExitError, SpawnError
from pactrack.runner import CommandOutput


def test_db_path_prefers_override():
    assert checkupdates_db_path_from_inputs('/custom/check-db', None, None) == Path('/custom/check-db')


def test_db_path_override_is_trimmed():
    assert checkupdates_db_path_from_inputs('  /custom/db  ', '/tmpx', '1') == Path('/custom/db')


def test_db_path_uses_tmpdir_and_uid():
    assert checkupdates_db_path_from_inputs(None, '/tmpx', '1234') == Path('/tmpx/checkup-db-1234')


@pytest.mark.parametrize('override', [None, '', '   '])
def test_db_path_defaults_when_blank(override):
    assert checkupdates_db_path_from_inputs(override, ' ', None) == Path('/tmp/checkup-db-0')


def test_db_path_reads_environment(monkeypatch):
    monkeypatch.delenv('CHECKUPDATES_DB', raising=False)
    monkeypatch.setenv('TMPDIR', '/scratch')
    monkeypatch.setenv('UID', '1000')

    assert checkupdates_db_path() == Path('/scratch/checkup-db-1000')


def test_filter_drops_bracket_lines():
    raw = 'pacman 1.0-1 -> 1.0-2\nwarning: [ignored package]\nopenssl 3.1-1 -> 3.1-2\n'

    assert filter_pacman_qu_output(raw) == 'pacman 1.0-1 -> 1.0-2\nopenssl 3.1-1 -> 3.1-2'


def test_filter_drops_blank_lines_and_keeps_lone_brackets():
    raw = '\n  \nfoo 1 -> 2 [\n]\n'

    assert filter_pacman_qu_output(raw) == 'foo 1 -> 2 [\n]'


def test_resolve_db_path_from_pacman_conf(monkeypatch, tmp_path):
    monkeypatch.setattr(checkdb, 'run_capture', lambda cmd, codes: CommandOutput(f'\n  {tmp_path}\n', ''))

    assert resolve_pacman_db_path() == tmp_path


def test_resolve_db_path_missing_dir_falls_back(monkeypatch, tmp_path):
    missing = tmp_path / 'nope'
    monkeypatch.setattr(checkdb, 'run_capture', lambda cmd, codes: CommandOutput(f'{missing}\n', ''))

    assert resolve_pacman_db_path() == Path('/var/lib/pacman')


def test_resolve_db_path_command_failure_falls_back(monkeypatch, caplog):
    def fail(cmd, codes):
        raise SpawnError('pacman-conf', FileNotFoundError(2, 'No such file or directory'))

    monkeypatch.setattr(checkdb, 'run_capture', fail)

    assert resolve_pacman_db_path() == Path('/var/lib/pacman')
    assert 'failed to read DBPath via pacman-conf' in caplog.text


def test_prepare_links_local_db(tmp_path):
    real = tmp_path / 'real'
    (real / 'local').mkdir(parents=True)
    scratch = tmp_path / 'scratch' / 'db'

    prepare_checkupdates_db(scratch, real)

    assert (scratch / 'local').is_symlink()
    assert (scratch / 'local').resolve() == (real / 'local').resolve()


def test_prepare_is_idempotent(tmp_path):
    real = tmp_path / 'real'
    (real / 'local').mkdir(parents=True)
    other = tmp_path / 'other'
    (other / 'local').mkdir(parents=True)
    scratch = tmp_path / 'scratch'

    prepare_checkupdates_db(scratch, real)
    prepare_checkupdates_db(scratch, other)

    assert (scratch / 'local').resolve() == (real / 'local').resolve()


def test_prepare_keeps_dangling_link(tmp_path):
    scratch = tmp_path / 'scratch'
    scratch.mkdir()
    (scratch / 'local').symlink_to(tmp_path / 'gone')

    prepare_checkupdates_db(scratch, tmp_path / 'real')

    assert (scratch / 'local').is_symlink()


def test_prepare_reports_mkdir_failure(tmp_path):
    blocker = tmp_path / 'file'
    blocker.write_text('')

    with pytest.raises(FilesystemError) as exc:
        prepare_checkupdates_db(blocker / 'db', tmp_path)

    assert 'create temp pacman db' in exc.value.context


def test_lock_file_removed_on_success(tmp_path):
    with db_lock(tmp_path) as lock_file:
        lock_file.write_text('')

    assert not lock_file.exists()


def test_lock_file_removed_on_error(tmp_path):
    with pytest.raises(RuntimeError):
        with db_lock(tmp_path) as lock_file:
            lock_file.write_text('')
            raise RuntimeError('sync failed')

    assert not lock_file.exists()


def test_lock_release_without_file_is_silent(tmp_path):
    with db_lock(tmp_path) as lock_file:
        pass

    assert not lock_file.exists()


@pytest.fixture
def scratch(monkeypatch, tmp_path):
    real = tmp_path / 'real'
    (real / 'local').mkdir(parents=True)
    monkeypatch.setattr(checkdb, 'resolve_pacman_db_path', lambda: real)
    return tmp_path / 'scratch'


def test_fetch_official_updates(monkeypatch, scratch):
    calls = []

    def fake_sync(db_path):
        calls.append('sync')
        (db_path / 'db.lck').write_text('')

    def fake_query(db_path):
        calls.append('query')
        return CommandOutput('linux 6.9-1 -> 6.10-1\nfoo 1 -> 2 [ignored]\n\n', '')

    monkeypatch.setattr(checkdb, 'sync_checkupdates_db', fake_sync)
    monkeypatch.setattr(checkdb, 'query_official_updates', fake_query)

    assert fetch_official_updates(scratch) == 'linux 6.9-1 -> 6.10-1'
    assert calls == ['sync', 'query']
    assert not (scratch / 'db.lck').exists()


def test_fetch_official_updates_sync_failure_releases_lock(monkeypatch, scratch):
    def fake_sync(db_path):
        (db_path / 'db.lck').write_text('')
        raise NonZeroExitError('fakeroot -- pacman -Sy', 1, 'error: failed to synchronize')

    monkeypatch.setattr(checkdb, 'sync_checkupdates_db', fake_sync)

    with pytest.raises(NonZeroExitError):
        fetch_official_updates(scratch)

    assert not (scratch / 'db.lck').exists()


def test_sync_and_query_arguments(monkeypatch, tmp_path):
    seen = []

    def fake_run(cmd, codes):
        seen.append((cmd.argv(), list(codes)))
        return CommandOutput('', '')

    monkeypatch.setattr(checkdb, 'run_capture', fake_run)
    checkdb.sync_checkupdates_db(tmp_path)
    checkdb.query_official_updates(tmp_path)

    assert seen[0] == (
        [
            'fakeroot', '--', 'pacman', '-Sy', '--disable-sandbox-filesystem',
            '--dbpath', str(tmp_path), '--logfile', '/dev/null',
        ],
        [0],
    )
    assert seen[1] == (['pacman', '-Qu', '--dbpath', str(tmp_path), '--color', 'never'], [0, 1])
