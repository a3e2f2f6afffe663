from datetime import datetime

from pactrack.state import AppState, PackageUpdate, Status, UpdateSnapshot, UpdateSource

NOW = datetime(2024, 5, 1, 12, 0, 0)


def update(name, source=UpdateSource.OFFICIAL):
    return PackageUpdate(name, '1', '2', source)


def test_empty_snapshot_is_up_to_date():
    state = AppState.from_snapshot(UpdateSnapshot(), NOW)

    assert state.status == Status.UP_TO_DATE
    assert state.total_count == 0
    assert state.last_checked == NOW


def test_snapshot_counts():
    snapshot = UpdateSnapshot(official=(update('a'), update('b')), aur=(update('c', UpdateSource.AUR),))
    state = AppState.from_snapshot(snapshot, NOW)

    assert state.status == Status.UPDATES_AVAILABLE
    assert (state.official_count, state.aur_count, state.total_count) == (2, 1, 3)


def test_error_keeps_counts():
    good = AppState.from_snapshot(UpdateSnapshot(official=(update('a'),)), NOW)
    later = datetime(2024, 5, 1, 13, 0, 0)

    failed = good.with_error('boom', later)

    assert failed.status == Status.ERROR
    assert failed.last_error == 'boom'
    assert failed.last_checked == later
    assert failed.total_count == 1
    assert good.status == Status.UPDATES_AVAILABLE


def test_checking_clears_error_only():
    failed = AppState(total_count=4, official_count=4, last_checked=NOW).with_error('boom', NOW)

    checking = failed.with_checking()

    assert checking.status == Status.CHECKING
    assert checking.last_error is None
    assert checking.total_count == 4
    assert checking.last_checked == NOW


def test_default_state():
    state = AppState()

    assert state.status == Status.CHECKING
    assert state.last_checked is None
    assert state.total_count == 0
