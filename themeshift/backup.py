from __future__ import annotations

import json
import logging
import os
import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from pathlib import Path
from pathlib import PurePath
from pathlib import PureWindowsPath

from themeshift.errors import BackupError
from themeshift.errors import ParseError
from themeshift.theme import TargetKind

logger = logging.getLogger(__name__)

MANIFEST = 'manifest.json'
TIMESTAMP_FORMAT = '%Y%m%d-%H%M%S'


@dataclass(frozen=True, slots=True)
class BackupEntry:
    """One file captured before it was modified; `backup_path` is None if absent."""

    target: TargetKind
    path: str
    backup_path: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {'target': str(self.target), 'path': self.path, 'backupPath': self.backup_path}

    @classmethod
    def from_dict(cls, data: dict) -> BackupEntry:
        try:
            return cls(
                target=TargetKind(data['target']),
                path=str(data['path']),
                backup_path=data.get('backupPath'),
            )
        except (KeyError, TypeError, ValueError) as exc:
            err_msg = f'invalid manifest entry {data!r}'
            raise ParseError(err_msg) from exc


@dataclass(frozen=True, slots=True)
class BackupSet:
    timestamp: datetime
    directory: Path
    entries: list[BackupEntry] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.directory.name

    @property
    def manifest(self) -> Path:
        return self.directory / MANIFEST

    @property
    def restorable(self) -> list[BackupEntry]:
        return [e for e in self.entries if e.backup_path is not None]

    def __str__(self) -> str:
        return f'{self.name} ({len(self.restorable)} files)'


def relative_backup_path(path: str) -> PurePath:
    """
    Maps an absolute path to a relative layout that keeps its root, so
    `C:\\Users\\me\\x` becomes `C/Users/me/x`, `\\\\srv\\share\\x` becomes
    `UNC/srv/share/x` and `/home/me/x` becomes `root/home/me/x`.
    """
    win = PureWindowsPath(path)
    if win.drive.startswith('\\\\'):
        server_share = win.drive.strip('\\').split('\\')
        return PurePath('UNC', *server_share, *win.parts[1:])
    if win.drive:
        return PurePath(win.drive.rstrip(':'), *win.parts[1:])
    return PurePath('root', *PurePath(path).parts[1:])


def read_manifest(manifest: Path) -> list[BackupEntry]:
    try:
        data = json.loads(manifest.read_text(encoding='utf-8'))
    except (OSError, json.JSONDecodeError) as exc:
        err_msg = f'cannot read manifest {manifest!s}: {exc}'
        raise ParseError(err_msg) from exc
    if not isinstance(data, list):
        err_msg = f'manifest {manifest!s} is not a list'
        raise ParseError(err_msg)
    return [BackupEntry.from_dict(item) for item in data]


def write_manifest(manifest: Path, entries: Iterable[BackupEntry]) -> None:
    """Writes the manifest through a temporary file so it appears atomically."""
    tmp = manifest.with_suffix('.tmp')
    payload = json.dumps([e.to_dict() for e in entries], indent=2)
    tmp.write_text(payload + '\n', encoding='utf-8')
    os.replace(tmp, manifest)


class BackupStore:
    """Creates timestamped snapshot directories under a backup root."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def allocate(self, timestamp: datetime) -> Path:
        """Creates a new directory named after `timestamp`, suffixed on collision."""
        base = timestamp.strftime(TIMESTAMP_FORMAT)
        self.root.mkdir(parents=True, exist_ok=True)
        n = 0
        while True:
            name = base if n == 0 else f'{base}-{n}'
            directory = self.root / name
            try:
                directory.mkdir()
            except FileExistsError:
                n += 1
                continue
            return directory

    def create(
        self, paths: Iterable[tuple[TargetKind, str]], timestamp: datetime | None = None
    ) -> BackupSet:
        """
        Copies every existing path into a fresh snapshot directory. The manifest
        is written last; a failed backup leaves no directory behind.
        """
        timestamp = timestamp or datetime.now()
        try:
            directory = self.allocate(timestamp)
        except OSError as exc:
            err_msg = f'cannot create backup directory in {self.root!s}: {exc}'
            raise BackupError(err_msg) from exc

        entries: list[BackupEntry] = []
        try:
            for target, path in paths:
                entries.append(self._copy(directory, target, path))
            write_manifest(directory / MANIFEST, entries)
        except OSError as exc:
            shutil.rmtree(directory, ignore_errors=True)
            err_msg = f'backup failed: {exc}'
            raise BackupError(err_msg) from exc

        logger.info(f'backup created in {directory!s} with {len(entries)} entries')
        return BackupSet(timestamp=timestamp, directory=directory, entries=entries)

    def _copy(self, directory: Path, target: TargetKind, path: str) -> BackupEntry:
        src = Path(path)
        if not src.is_file():
            logger.debug(f'{path} does not exist, nothing to back up')
            return BackupEntry(target, path, None)
        dst = directory / relative_backup_path(path)
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)
        logger.debug(f'backed up {path} -> {dst!s}')
        return BackupEntry(target, path, str(dst))
