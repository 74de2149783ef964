from __future__ import annotations

import enum
import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any

from themeshift import mutations
from themeshift.errors import ApplyError
from themeshift.errors import TargetMissingError
from themeshift.files import Files
from themeshift.system import ACCENT_LOCATION
from themeshift.system import WALLPAPER_LOCATION
from themeshift.system import SystemSettings
from themeshift.theme import TargetKind
from themeshift.theme import Theme

logger = logging.getLogger(__name__)

WINDOWS = sys.platform == 'win32'

DEFAULT_PATHS: dict[TargetKind, str] = {
    TargetKind.TERMINAL: (
        '%LOCALAPPDATA%/Packages/Microsoft.WindowsTerminal_8wekyb3d8bbwe/LocalState/settings.json'
        if WINDOWS
        else '~/.config/windows-terminal/settings.json'
    ),
    TargetKind.SHELL_PROFILE: (
        '~/Documents/PowerShell/Microsoft.PowerShell_profile.ps1'
        if WINDOWS
        else '~/.config/powershell/Microsoft.PowerShell_profile.ps1'
    ),
    TargetKind.SHELL_RC: '~/.bashrc',
    TargetKind.EDITOR_SETTINGS: (
        '%APPDATA%/Code/User/settings.json' if WINDOWS else '~/.config/Code/User/settings.json'
    ),
    TargetKind.EDITOR_THEME: '~/.vscode/extensions/themeshift/themes/themeshift-color-theme.json',
    TargetKind.EDITOR_RC: '~/_vimrc' if WINDOWS else '~/.vimrc',
}

SHELL_MARKERS = ('# >>> themeshift >>>', '# <<< themeshift <<<')
VIM_MARKERS = ('" >>> themeshift >>>', '" <<< themeshift <<<')


class Action(enum.StrEnum):
    MERGE_TERMINAL = 'merge-terminal'
    MERGE_SETTINGS = 'merge-settings'
    REPLACE_BLOCK = 'replace-block'
    WRITE_FILE = 'write-file'
    SET_ACCENT = 'set-accent'
    SET_WALLPAPER = 'set-wallpaper'


FILE_ACTIONS = frozenset(
    {Action.MERGE_TERMINAL, Action.MERGE_SETTINGS, Action.REPLACE_BLOCK, Action.WRITE_FILE}
)


class StepStatus(enum.StrEnum):
    APPLIED = 'applied'
    UNCHANGED = 'no changes'
    SKIPPED = 'skipped'
    DRY_RUN = 'dry run'
    FAILED = 'failed'


@dataclass(slots=True)
class StepResult:
    step: PlanStep
    status: StepStatus
    message: str = ''


@dataclass(frozen=True, slots=True)
class PlanStep:
    """
    A single, fully resolved mutation of one target. What the mutation does
    is selected by `action`; every value it needs lives in `metadata`.
    """

    name: str
    target: TargetKind
    path: str
    action: Action
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_file(self) -> bool:
        return self.action in FILE_ACTIONS

    def render(self, current: str | None) -> str:
        """Returns the new contents of the target file given its current contents."""
        meta = self.metadata
        match self.action:
            case Action.MERGE_TERMINAL | Action.MERGE_SETTINGS if current is None:
                err_msg = f'{self.name}: settings file {self.path} not found.'
                raise TargetMissingError(err_msg)
            case Action.MERGE_TERMINAL:
                return mutations.merge_terminal(current or '', meta, self.name)
            case Action.MERGE_SETTINGS:
                return mutations.merge_settings(current or '', meta['settings'], self.name)
            case Action.REPLACE_BLOCK:
                return mutations.replace_block(
                    current, meta['marker'], meta['block'], meta['end_marker']
                )
            case Action.WRITE_FILE:
                return meta['content']
            case _:
                err_msg = f'{self.name}: action {self.action} does not render a file'
                raise ValueError(err_msg)

    def apply(self, settings: SystemSettings) -> StepResult:
        """Performs the mutation and reports what happened."""
        match self.action:
            case Action.SET_ACCENT:
                if settings.set_accent_color(self.metadata['value']):
                    return StepResult(self, StepStatus.APPLIED)
                return StepResult(self, StepStatus.SKIPPED, f'not supported by {settings.name}')
            case Action.SET_WALLPAPER:
                wallpaper = Path(self.metadata['wallpaper'])
                if not wallpaper.is_file():
                    logger.warning(f'wallpaper={wallpaper!s} not found, skipping')
                    return StepResult(self, StepStatus.SKIPPED, 'wallpaper not found')
                if settings.set_wallpaper(wallpaper):
                    return StepResult(self, StepStatus.APPLIED)
                return StepResult(self, StepStatus.SKIPPED, f'not supported by {settings.name}')

        path = Path(self.path)
        current = Files.read(path)
        new = self.render(current)
        if new == current:
            return StepResult(self, StepStatus.UNCHANGED)
        try:
            Files.write(path, new)
        except OSError as exc:
            err_msg = f'{self.name}: cannot write {self.path}: {exc}'
            raise ApplyError(err_msg) from exc
        logger.info(f'{self.name}: updated {self.path}')
        return StepResult(self, StepStatus.APPLIED)

    def __str__(self) -> str:
        return f'{self.name} -> {self.path}'


def resolve(path: str | None, kind: TargetKind) -> str:
    return str(Files.get_path(path or DEFAULT_PATHS[kind]))


def terminal_steps(theme: Theme) -> list[PlanStep]:
    if not (conf := theme.get(TargetKind.TERMINAL)):
        return []
    meta = {
        'scheme': dict(conf.scheme) if conf.scheme else None,
        'profile_defaults': dict(conf.profile_defaults or {}),
        'profiles': [dict(p) for p in conf.profiles or []],
        'settings': dict(conf.settings or {}),
    }
    path = resolve(conf.settings_path, TargetKind.TERMINAL)
    return [PlanStep('terminal', TargetKind.TERMINAL, path, Action.MERGE_TERMINAL, meta)]


def _block_steps(theme: Theme, kind: TargetKind, markers: tuple[str, str]) -> list[PlanStep]:
    if not (conf := theme.get(kind)):
        return []
    meta = {
        'marker': conf.marker or markers[0],
        'end_marker': conf.end_marker or markers[1],
        'block': conf.block,
    }
    path = resolve(conf.path, kind)
    return [PlanStep(kind.value, kind, path, Action.REPLACE_BLOCK, meta)]


def shell_profile_steps(theme: Theme) -> list[PlanStep]:
    return _block_steps(theme, TargetKind.SHELL_PROFILE, SHELL_MARKERS)


def shell_rc_steps(theme: Theme) -> list[PlanStep]:
    return _block_steps(theme, TargetKind.SHELL_RC, SHELL_MARKERS)


def editor_rc_steps(theme: Theme) -> list[PlanStep]:
    return _block_steps(theme, TargetKind.EDITOR_RC, VIM_MARKERS)


def system_steps(theme: Theme) -> list[PlanStep]:
    """Accent color and wallpaper, as two independent steps."""
    if not (conf := theme.get(TargetKind.SYSTEM)):
        return []
    steps: list[PlanStep] = []
    if conf.accent_color not in (None, ''):
        value = mutations.parse_accent_color(conf.accent_color)
        if value is None:
            logger.warning(f'invalid accent color {conf.accent_color!r}, ignoring')
        else:
            meta = {'value': value}
            steps.append(
                PlanStep('accent', TargetKind.SYSTEM, ACCENT_LOCATION, Action.SET_ACCENT, meta)
            )
    if conf.wallpaper:
        wallpaper = str(Files.get_path(conf.wallpaper))
        steps.append(
            PlanStep(
                'wallpaper',
                TargetKind.SYSTEM,
                WALLPAPER_LOCATION,
                Action.SET_WALLPAPER,
                {'wallpaper': wallpaper},
            )
        )
    return steps


def editor_settings_steps(theme: Theme) -> list[PlanStep]:
    if not (conf := theme.get(TargetKind.EDITOR_SETTINGS)):
        return []
    path = resolve(conf.settings_path, TargetKind.EDITOR_SETTINGS)
    meta = {'settings': dict(conf.settings)}
    return [
        PlanStep('editor settings', TargetKind.EDITOR_SETTINGS, path, Action.MERGE_SETTINGS, meta)
    ]


def editor_theme_steps(theme: Theme) -> list[PlanStep]:
    if not (conf := theme.get(TargetKind.EDITOR_THEME)):
        return []
    content = conf.content
    if not isinstance(content, str):
        content = json.dumps(content, indent=4, ensure_ascii=False) + '\n'
    path = resolve(conf.path, TargetKind.EDITOR_THEME)
    return [
        PlanStep(
            'editor theme', TargetKind.EDITOR_THEME, path, Action.WRITE_FILE, {'content': content}
        )
    ]


Generator = Callable[[Theme], list[PlanStep]]

GENERATORS: tuple[Generator, ...] = (
    terminal_steps,
    shell_profile_steps,
    shell_rc_steps,
    system_steps,
    editor_settings_steps,
    editor_theme_steps,
    editor_rc_steps,
)


def build_plan(theme: Theme) -> list[PlanStep]:
    """Runs every generator in order and collects the steps they emit."""
    plan: list[PlanStep] = []
    for generate in GENERATORS:
        plan.extend(generate(theme))
    logger.debug(f'theme={theme.name!r} plan has {len(plan)} steps')
    return plan
