from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class Status(Enum):
    CHECKING = 'checking'
    UP_TO_DATE = 'up-to-date'
    UPDATES_AVAILABLE = 'updates-available'
    ERROR = 'error'


class UpdateSource(Enum):
    OFFICIAL = 'official'
    AUR = 'aur'


@dataclass(frozen=True)
class PackageUpdate:
    """A single pending package update."""

    name: str
    current: str
    latest: str
    source: UpdateSource


@dataclass(frozen=True)
class UpdateSnapshot:
    """Updates found by one successful check."""

    official: tuple[PackageUpdate, ...] = ()
    aur: tuple[PackageUpdate, ...] = ()

    @property
    def total_count(self) -> int:
        return len(self.official) + len(self.aur)


@dataclass(frozen=True)
class AppState:
    """Status published to subscribers after each step of a check cycle."""

    status: Status = Status.CHECKING
    official_count: int = 0
    aur_count: int = 0
    total_count: int = 0
    last_checked: datetime | None = None
    last_error: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: UpdateSnapshot, checked_at: datetime) -> 'AppState':
        """Build the state for a successful check."""
        total = snapshot.total_count
        return cls(
            status=Status.UP_TO_DATE if total == 0 else Status.UPDATES_AVAILABLE,
            official_count=len(snapshot.official),
            aur_count=len(snapshot.aur),
            total_count=total,
            last_checked=checked_at,
            last_error=None,
        )

    def with_error(self, message: str, checked_at: datetime) -> 'AppState':
        """Mark as failed, keeping the counts of the last good check."""
        return replace(self, status=Status.ERROR, last_checked=checked_at, last_error=message)

    def with_checking(self) -> 'AppState':
        """Mark a check as in progress, keeping everything else."""
        return replace(self, status=Status.CHECKING, last_error=None)
