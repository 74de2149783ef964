from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any
from typing import Callable

import pytest
import yaml

from themeshift.config import Config
from themeshift.system import SystemSettings
from themeshift.theme import Theme

TERMINAL_SETTINGS = """{
    // Windows Terminal settings
    "$schema": "https://aka.ms/terminal-profiles-schema",
    "defaultProfile": "{574e775e-4f2a-5b96-ac1e-a2962a402336}",
    "profiles": {
        "defaults": {"fontSize": 11},
        "list": [
            {"name": "PowerShell", "source": "Windows.Terminal.PowershellCore"},
            {"name": "Command Prompt", "commandline": "cmd.exe"},
        ]
    },
    "schemes": [
        {"name": "Nord", "background": "#000000"},
        {"name": "Campbell", "background": "#0C0C0C"}
    ]
}
"""


class MemorySettings(SystemSettings):
    """Records system properties instead of touching the desktop."""

    name = 'memory'

    def __init__(self) -> None:
        self.accent: int | None = None
        self.wallpaper: Path | None = None

    def set_accent_color(self, value: int) -> bool:
        self.accent = value
        return True

    def set_wallpaper(self, path: Path) -> bool:
        self.wallpaper = path
        return True


def digest(*paths: Path) -> dict[Path, str | None]:
    return {
        p: hashlib.sha256(p.read_bytes()).hexdigest() if p.exists() else None for p in paths
    }


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        backup_root=tmp_path / 'backups',
        theme_dirs=[tmp_path / 'themes'],
        settings=MemorySettings(),
    )


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A fake home directory so default paths never reach the real one."""
    h = tmp_path / 'home'
    h.mkdir()
    monkeypatch.setenv('HOME', str(h))
    monkeypatch.setenv('USERPROFILE', str(h))
    monkeypatch.setenv('APPDATA', str(h / 'AppData' / 'Roaming'))
    monkeypatch.setenv('LOCALAPPDATA', str(h / 'AppData' / 'Local'))
    return h


@pytest.fixture
def targets(tmp_path: Path) -> dict[str, Path]:
    """Target files of a typical setup; rc and terminal files exist, vimrc does not."""
    d = tmp_path / 'targets'
    d.mkdir()
    paths = {
        'terminal': d / 'terminal.json',
        'editor': d / 'settings.json',
        'bashrc': d / '.bashrc',
        'profile': d / 'profile.ps1',
        'vimrc': d / '.vimrc',
        'editor_theme': d / 'ext' / 'themes' / 'nord-color-theme.json',
        'wallpaper': d / 'nord.png',
    }
    paths['terminal'].write_text(TERMINAL_SETTINGS)
    paths['editor'].write_text('{\n    "editor.fontSize": 14\n}\n')
    paths['bashrc'].write_text('export PAGER=less\n')
    paths['profile'].write_text('')
    paths['wallpaper'].write_bytes(b'\x89PNG')
    return paths


@pytest.fixture
def theme_data(targets: dict[str, Path]) -> dict[str, Any]:
    return {
        'name': 'nord',
        'description': 'Arctic, north-bluish palette',
        'terminal': {
            'settingsPath': str(targets['terminal']),
            'scheme': {'name': 'Nord', 'background': '#2E3440', 'foreground': '#D8DEE9'},
            'profileDefaults': {'colorScheme': 'Nord'},
        },
        'shell_rc': {'path': str(targets['bashrc']), 'block': 'export BAT_THEME=Nord\n'},
        'shell_profile': {'path': str(targets['profile']), 'block': '$env:THEME = "nord"'},
        'system': {'accent_color': '88C0D0', 'wallpaper': str(targets['wallpaper'])},
        'editor_settings': {
            'settings_path': str(targets['editor']),
            'settings': {'workbench.colorTheme': 'Nord'},
        },
        'editor_theme': {'path': str(targets['editor_theme']), 'content': {'name': 'Nord'}},
        'editor_rc': {'path': str(targets['vimrc']), 'block': 'colorscheme nord'},
    }


@pytest.fixture
def theme(theme_data: dict[str, Any]) -> Theme:
    return Theme.new(theme_data)


@pytest.fixture
def write_theme(config: Config) -> Callable[..., Path]:
    def _write(name: str, data: dict[str, Any]) -> Path:
        d = config.theme_dirs[0]
        d.mkdir(parents=True, exist_ok=True)
        fn = d / f'{name}.yaml'
        fn.write_text(yaml.safe_dump(data, sort_keys=False))
        return fn

    return _write
