import os
from pathlib import Path

CONFIG_DIR = Path(os.environ.get('XDG_CONFIG_HOME') or Path.home() / '.config') / 'pactrack'
CONFIG_FILE = CONFIG_DIR / 'config.yaml'

AUTO = 'auto'

DEFAULT_DBPATH = '/var/lib/pacman'
DEFAULT_TMPDIR = '/tmp'
DEFAULT_UID = '0'
DB_LOCK_NAME = 'db.lck'

TERMINAL_FALLBACKS = [
    'kitty',
    'alacritty',
    'gnome-terminal',
    'konsole',
    'xfce4-terminal',
    'xterm',
]
