from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Self

from themeshift import __appname__
from themeshift.system import SystemSettings
from themeshift.system import default_settings
from themeshift.theme import theme_dirs_from_env


def app_home() -> Path:
    root = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
    return root / __appname__


APP_HOME = app_home()


@dataclass(slots=True)
class Config:
    """Locations and backends shared by the executor and the restore engine."""

    backup_root: Path = APP_HOME / 'backups'
    theme_dirs: list[Path] = field(default_factory=lambda: [APP_HOME / 'themes'])
    settings: SystemSettings = field(default_factory=default_settings)

    @classmethod
    def from_env(cls, home: Path | None = None) -> Self:
        """Builds the config from XDG_CONFIG_HOME and THEMESHIFT_PATH."""
        home = home or app_home()
        return cls(
            backup_root=home / 'backups',
            theme_dirs=theme_dirs_from_env(home / 'themes'),
        )
