from __future__ import annotations

import enum
import json
import logging
import os
import re
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from dataclasses import fields
from pathlib import Path
from typing import Any
from typing import Self

import yaml

from themeshift.errors import ParseError
from themeshift.errors import ResolutionError

logger = logging.getLogger(__name__)

THEME_SUFFIXES = ('.yaml', '.yml')
THEME_PATH_ENV = 'THEMESHIFT_PATH'


class TargetKind(enum.StrEnum):
    TERMINAL = 'terminal'
    SHELL_PROFILE = 'shell_profile'
    SHELL_RC = 'shell_rc'
    SYSTEM = 'system'
    EDITOR_SETTINGS = 'editor_settings'
    EDITOR_THEME = 'editor_theme'
    EDITOR_RC = 'editor_rc'


def snake_case(key: str) -> str:
    """Normalizes 'settingsPath' and 'settings-path' to 'settings_path'."""
    key = re.sub(r'(?<=[a-z0-9])([A-Z])', r'_\1', key)
    return key.replace('-', '_').lower()


def _expect(value: Any, kind: type | tuple[type, ...], where: str) -> Any:
    if not isinstance(value, kind):
        names = kind.__name__ if isinstance(kind, type) else '|'.join(k.__name__ for k in kind)
        err_msg = f'{where}: expected {names}, got {type(value).__name__}'
        raise ParseError(err_msg)
    return value


def _expect_json(value: Any, where: str) -> Any:
    """Rejects values that cannot be written into a JSON settings document."""
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as exc:
        err_msg = f'{where}: not representable as JSON: {exc}'
        raise ParseError(err_msg) from exc
    return value


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """Base for the per-target configuration blocks of a theme."""

    @classmethod
    def new(cls, data: Mapping[str, Any], where: str) -> Self:
        """
        Builds the config from a raw mapping, normalizing key spelling and
        rejecting fields the target does not know about.
        """
        _expect(data, Mapping, where)
        known = {f.name: f for f in fields(cls)}
        values: dict[str, Any] = {}
        for raw_key, value in data.items():
            key = snake_case(str(raw_key))
            if key not in known:
                err_msg = f'{where}: unknown field {raw_key!r}'
                raise ParseError(err_msg)
            if value is not None:
                values[key] = value
        config = cls(**values)
        config.validate(where)
        return config

    def validate(self, where: str) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name in ('settings_path', 'path', 'marker', 'end_marker', 'block'):
                _expect(value, str, f'{where}.{f.name}')


@dataclass(frozen=True, slots=True)
class TerminalConfig(TargetConfig):
    settings_path: str | None = None
    scheme: Mapping[str, Any] | None = None
    profile_defaults: Mapping[str, Any] | None = None
    profiles: list[Mapping[str, Any]] | None = None
    settings: Mapping[str, Any] | None = None

    def validate(self, where: str) -> None:
        TargetConfig.validate(self, where)
        if self.scheme is not None:
            _expect(self.scheme, Mapping, f'{where}.scheme')
            _expect_json(self.scheme, f'{where}.scheme')
            if not self.scheme.get('name'):
                err_msg = f'{where}.scheme: a color scheme needs a name'
                raise ParseError(err_msg)
        if self.profile_defaults is not None:
            _expect(self.profile_defaults, Mapping, f'{where}.profile_defaults')
            _expect_json(self.profile_defaults, f'{where}.profile_defaults')
        if self.settings is not None:
            _expect(self.settings, Mapping, f'{where}.settings')
            _expect_json(self.settings, f'{where}.settings')
        for i, profile in enumerate(_expect(self.profiles or [], list, f'{where}.profiles')):
            _expect(profile, Mapping, f'{where}.profiles[{i}]')
            _expect_json(profile, f'{where}.profiles[{i}]')
            if not profile.get('name') and not profile.get('source'):
                err_msg = f'{where}.profiles[{i}]: needs a name or a source'
                raise ParseError(err_msg)

    @property
    def is_empty(self) -> bool:
        return not (self.scheme or self.profile_defaults or self.profiles or self.settings)


@dataclass(frozen=True, slots=True)
class TextBlockConfig(TargetConfig):
    path: str | None = None
    marker: str | None = None
    end_marker: str | None = None
    block: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.block


@dataclass(frozen=True, slots=True)
class SystemConfig(TargetConfig):
    accent_color: str | None = None
    wallpaper: str | None = None

    def validate(self, where: str) -> None:
        if self.accent_color is not None:
            # yaml reads an unquoted 112233 as an int
            _expect(self.accent_color, (str, int), f'{where}.accent_color')
        if self.wallpaper is not None:
            _expect(self.wallpaper, str, f'{where}.wallpaper')

    @property
    def is_empty(self) -> bool:
        return self.accent_color in (None, '') and not self.wallpaper


@dataclass(frozen=True, slots=True)
class EditorSettingsConfig(TargetConfig):
    settings_path: str | None = None
    settings: Mapping[str, Any] | None = None

    def validate(self, where: str) -> None:
        TargetConfig.validate(self, where)
        if self.settings is not None:
            _expect(self.settings, Mapping, f'{where}.settings')
            _expect_json(self.settings, f'{where}.settings')

    @property
    def is_empty(self) -> bool:
        return not self.settings


@dataclass(frozen=True, slots=True)
class ThemeFileConfig(TargetConfig):
    path: str | None = None
    content: str | Mapping[str, Any] | None = None

    def validate(self, where: str) -> None:
        TargetConfig.validate(self, where)
        if self.content is not None:
            _expect(self.content, (str, Mapping), f'{where}.content')
            _expect_json(self.content, f'{where}.content')

    @property
    def is_empty(self) -> bool:
        return not self.content


TARGET_CONFIGS: dict[TargetKind, type[TargetConfig]] = {
    TargetKind.TERMINAL: TerminalConfig,
    TargetKind.SHELL_PROFILE: TextBlockConfig,
    TargetKind.SHELL_RC: TextBlockConfig,
    TargetKind.SYSTEM: SystemConfig,
    TargetKind.EDITOR_SETTINGS: EditorSettingsConfig,
    TargetKind.EDITOR_THEME: ThemeFileConfig,
    TargetKind.EDITOR_RC: TextBlockConfig,
}


@dataclass(frozen=True, slots=True)
class Theme:
    """
    A named bundle of per-target configuration. A target missing from
    `targets` is left untouched when the theme is applied.
    """

    name: str
    description: str = ''
    targets: Mapping[TargetKind, TargetConfig] = field(default_factory=dict)

    def get(self, kind: TargetKind) -> Any:
        """Returns the config for a target, or None if absent or empty."""
        config = self.targets.get(kind)
        if config is None or config.is_empty:  # type: ignore[attr-defined]
            return None
        return config

    @classmethod
    def new(cls, data: Mapping[str, Any], name: str = '') -> Theme:
        """
        Creates a Theme from the mapping produced by a YAML/JSON load,
        validating every target block.
        """
        _expect(data, Mapping, 'theme')
        targets: dict[TargetKind, TargetConfig] = {}
        theme_name = name
        description = ''
        for raw_key, value in data.items():
            key = snake_case(str(raw_key))
            if key == 'name':
                theme_name = str(_expect(value, str, 'theme.name'))
                continue
            if key == 'description':
                description = str(value or '')
                continue
            try:
                kind = TargetKind(key)
            except ValueError:
                err_msg = f'theme: unknown target {raw_key!r}'
                raise ParseError(err_msg) from None
            if not value:
                logger.debug(f'target={kind} is empty, ignoring')
                continue
            targets[kind] = TARGET_CONFIGS[kind].new(value, where=kind.value)

        if not theme_name:
            err_msg = 'theme: no name specified.'
            raise ParseError(err_msg)
        return cls(name=theme_name, description=description, targets=targets)

    def __str__(self) -> str:
        return f'{self.name} ({len(self.targets)} targets)'


def load_theme(path: Path) -> Theme:
    """Reads a YAML theme file and returns the validated Theme."""
    if not path.is_file():
        err_msg = f'theme file {path!s} not found.'
        raise ResolutionError(err_msg)
    try:
        with path.open(encoding='utf-8') as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        err_msg = f'theme file {path.name!r} is not valid YAML: {exc}'
        raise ParseError(err_msg) from exc
    logger.debug(f'loaded theme file={path!s}')
    return Theme.new(data, name=path.stem)


def theme_dirs_from_env(default: Path) -> list[Path]:
    """Returns the default themes dir followed by the THEMESHIFT_PATH entries."""
    dirs = [default]
    for entry in os.environ.get(THEME_PATH_ENV, '').split(os.pathsep):
        if entry:
            dirs.append(Path(entry).expanduser())
    return dirs


def get_filenames(dirs: Iterable[Path]) -> list[Path]:
    """Returns every theme file found in the given directories."""
    found: list[Path] = []
    for d in dirs:
        if not d.is_dir():
            continue
        found.extend(sorted(p for p in d.iterdir() if p.suffix in THEME_SUFFIXES))
    return found


def find_theme(name: str, dirs: Iterable[Path]) -> Path:
    """Resolves a theme name, or a path to a theme file, to its file."""
    candidate = Path(name).expanduser()
    if candidate.suffix in THEME_SUFFIXES and candidate.is_file():
        return candidate
    for fn in get_filenames(dirs):
        if fn.stem == name:
            return fn
    err_msg = f'theme {name!r} not found'
    raise ResolutionError(err_msg)
