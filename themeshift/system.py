from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from pathlib import Path

from themeshift.errors import ApplyError

logger = logging.getLogger(__name__)

ACCENT_LOCATION = 'system:accent-color'
WALLPAPER_LOCATION = 'system:wallpaper'


class SysOps:
    """A utility class for running external commands."""

    @staticmethod
    def run(commands: str) -> int:
        """Executes a shell command and returns its exit code."""
        logger.debug(f'executing from run: {commands!r}')
        try:
            proc = subprocess.run(  # noqa: S603
                shlex.split(commands),
                stderr=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                check=False,
                shell=False,
            )
        except FileNotFoundError as exc:
            logger.error(f"'{commands}': {exc}")
            return 1
        return proc.returncode


class SystemSettings:
    """
    Writes OS-level appearance properties. Each setter returns False when
    the property is not supported on this desktop.
    """

    name = 'none'

    def set_accent_color(self, value: int) -> bool:
        logger.info(f'{self.name}: accent color not supported')
        return False

    def set_wallpaper(self, path: Path) -> bool:
        logger.info(f'{self.name}: wallpaper not supported')
        return False


class RegistrySettings(SystemSettings):
    """Windows: accent color in the DWM registry key, wallpaper via SPI."""

    name = 'registry'
    dwm_key = r'Software\Microsoft\Windows\DWM'
    spi_setdeskwallpaper = 0x0014
    spif_update = 0x01 | 0x02

    def set_accent_color(self, value: int) -> bool:
        import winreg

        try:
            with winreg.CreateKey(winreg.HKEY_CURRENT_USER, self.dwm_key) as key:
                winreg.SetValueEx(key, 'AccentColor', 0, winreg.REG_DWORD, value)
        except OSError as exc:
            err_msg = f'cannot write AccentColor: {exc}'
            raise ApplyError(err_msg) from exc
        logger.debug(f'AccentColor=0x{value:08X}')
        return True

    def set_wallpaper(self, path: Path) -> bool:
        import ctypes

        ok = ctypes.windll.user32.SystemParametersInfoW(  # type: ignore[attr-defined]
            self.spi_setdeskwallpaper, 0, str(path), self.spif_update
        )
        if not ok:
            err_msg = f'cannot set wallpaper {path!s}'
            raise ApplyError(err_msg)
        return True


class GSettings(SystemSettings):
    """GNOME desktops, through the `gsettings` command."""

    name = 'gsettings'
    schema = 'org.gnome.desktop.background'

    def set_wallpaper(self, path: Path) -> bool:
        uri = path.as_uri()
        for key in ('picture-uri', 'picture-uri-dark'):
            if SysOps.run(f'gsettings set {self.schema} {key} {shlex.quote(uri)}') != 0:
                err_msg = f'gsettings failed to set {key}'
                raise ApplyError(err_msg)
        return True


def default_settings() -> SystemSettings:
    if sys.platform == 'win32':
        return RegistrySettings()
    return GSettings()
