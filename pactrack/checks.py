from dataclasses import dataclass

from pactrack.checkdb import fetch_official_updates
from pactrack.config import EffectiveConfig
from pactrack.constants import AUTO
from pactrack.helpers import AurHelper, detect_aur_helper
from pactrack.parser import parse_update_lines
from pactrack.runner import ResolvedCommand, parse_command_string, run_capture
from pactrack.state import PackageUpdate, UpdateSnapshot, UpdateSource

NO_COLOR_FLAG = '--nocolor'


@dataclass(frozen=True)
class CheckOutcome:
    snapshot: UpdateSnapshot
    helper: AurHelper | None


def perform_check(config: EffectiveConfig) -> CheckOutcome:
    """Check official and AUR sources. Any failure aborts the whole check."""
    official = run_official_check(config)
    helper = detect_aur_helper(config.aur_helper, config.enable_aur)

    aur = []
    if config.enable_aur and helper is not None:
        aur = run_aur_check(helper)

    return CheckOutcome(
        snapshot=UpdateSnapshot(official=tuple(official), aur=tuple(aur)),
        helper=helper,
    )


def run_official_check(config: EffectiveConfig) -> list[PackageUpdate]:
    if config.official_check_cmd != AUTO:
        return run_official_check_custom(config.official_check_cmd)

    return parse_update_lines(fetch_official_updates(), UpdateSource.OFFICIAL)


def run_official_check_custom(raw: str) -> list[PackageUpdate]:
    """Run a configured checkupdates-style command. Exit 2 means no updates."""
    cmd = custom_official_command(raw)
    output = run_capture(cmd, [0, 2])
    return parse_update_lines(output.stdout, UpdateSource.OFFICIAL)


def custom_official_command(raw: str) -> ResolvedCommand:
    cmd = parse_command_string(raw)
    cmd.args.append(NO_COLOR_FLAG)
    return cmd


def run_aur_check(helper: AurHelper) -> list[PackageUpdate]:
    """List upgradable AUR packages. Helpers exit 1 when there are none."""
    cmd = ResolvedCommand(helper.binary, ['-Qua'])
    output = run_capture(cmd, [0, 1])
    return parse_update_lines(output.stdout, UpdateSource.AUR)
