from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path

import yaml

from pactrack.constants import AUTO, CONFIG_FILE
from pactrack.errors import ConfigError


class AurHelperMode(Enum):
    AUTO = 'auto'
    PARU = 'paru'
    YAY = 'yay'
    NONE = 'none'


@dataclass(frozen=True)
class EffectiveConfig:
    """Configuration after merging defaults, the config file and CLI flags."""

    poll_minutes: int = 30
    notify_on_change: bool = True
    enable_aur: bool = True
    terminal: str = AUTO
    official_check_cmd: str = AUTO
    aur_helper: AurHelperMode = AurHelperMode.AUTO
    upgrade_cmd: str = AUTO

    @property
    def poll_seconds(self) -> int:
        return max(self.poll_minutes, 1) * 60


@dataclass
class CliOverrides:
    poll_minutes: int | None = None
    no_aur: bool = False


def default_config_path() -> Path:
    return CONFIG_FILE


def load_config(path: Path | None = None, cli: CliOverrides | None = None) -> tuple[EffectiveConfig, Path]:
    """Load config from file and apply CLI overrides.

    Returns (config, path). A missing file yields the defaults.
    """
    path = path or default_config_path()
    cli = cli or CliOverrides()

    config = merge_file_config(EffectiveConfig(), read_file_config(path), path)

    if cli.poll_minutes is not None:
        config = replace(config, poll_minutes=max(cli.poll_minutes, 1))
    if cli.no_aur:
        config = replace(config, enable_aur=False)

    return config, path


def read_file_config(path: Path) -> dict:
    """Read the raw YAML mapping from the config file."""
    if not path.exists():
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f'failed to read config at {path}: {e}') from e
    except yaml.YAMLError as e:
        raise ConfigError(f'failed to parse config at {path}: {e}') from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f'failed to parse config at {path}: expected a mapping')
    return data


def merge_file_config(config: EffectiveConfig, data: dict, path: Path) -> EffectiveConfig:
    """Apply known keys from the file on top of `config`."""
    known = {f.name for f in fields(EffectiveConfig)}
    changes = {}

    for key, value in data.items():
        if key not in known or value is None:
            continue
        try:
            changes[key] = _coerce(key, value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f'invalid value for {key} in {path}: {value!r}') from e

    return replace(config, **changes)


def _coerce(key: str, value):
    if key == 'poll_minutes':
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(key)
        return max(value, 1)
    if key in ('notify_on_change', 'enable_aur'):
        if not isinstance(value, bool):
            raise TypeError(key)
        return value
    if key == 'aur_helper':
        return AurHelperMode(str(value).lower())
    if not isinstance(value, str):
        raise TypeError(key)
    return value


def save_config(path: Path, config: EffectiveConfig):
    """Write config as YAML."""
    data = {f.name: getattr(config, f.name) for f in fields(EffectiveConfig)}
    data['aur_helper'] = config.aur_helper.value
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
