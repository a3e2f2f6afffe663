import os
import stat
from enum import Enum
from pathlib import Path

from pactrack.config import AurHelperMode


class AurHelper(Enum):
    """AUR helpers pactrack knows how to query."""

    PARU = 'paru'
    YAY = 'yay'

    @property
    def binary(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


# Order is the precedence used in auto mode
SUPPORTED_HELPERS = [AurHelper.PARU, AurHelper.YAY]


def detect_aur_helper(
    mode: AurHelperMode,
    enable_aur: bool,
    search_path: str | None = None,
) -> AurHelper | None:
    """Detect the AUR helper to use. Reads PATH when no search path is given."""
    if not enable_aur:
        return None
    if search_path is None:
        search_path = os.environ.get('PATH')
    return detect_aur_helper_with_path(mode, search_path)


def detect_aur_helper_with_path(mode: AurHelperMode, search_path: str | None) -> AurHelper | None:
    if mode == AurHelperMode.NONE:
        return None

    if mode == AurHelperMode.AUTO:
        for helper in SUPPORTED_HELPERS:
            if has_binary(helper.binary, search_path):
                return helper
        return None

    helper = AurHelper(mode.value)
    if has_binary(helper.binary, search_path):
        return helper
    return None


def has_binary(binary: str, search_path: str | None) -> bool:
    """Check whether an executable named `binary` exists in any PATH directory."""
    if not search_path:
        return False

    for directory in search_path.split(os.pathsep):
        if not directory:
            continue
        if is_executable_file(Path(directory) / binary):
            return True
    return False


def is_executable_file(path: Path) -> bool:
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return stat.S_ISREG(mode) and bool(mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))
