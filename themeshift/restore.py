from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path

from themeshift.backup import MANIFEST
from themeshift.backup import TIMESTAMP_FORMAT
from themeshift.backup import BackupSet
from themeshift.backup import read_manifest
from themeshift.config import Config
from themeshift.errors import ApplyError
from themeshift.errors import ParseError
from themeshift.errors import ResolutionError

logger = logging.getLogger(__name__)


def parse_timestamp(directory: Path) -> datetime:
    """Reads the timestamp from a `YYYYMMDD-HHMMSS[-N]` directory name."""
    stamp = directory.name[: len('YYYYMMDD-HHMMSS')]
    try:
        return datetime.strptime(stamp, TIMESTAMP_FORMAT)  # noqa: DTZ007
    except ValueError:
        return datetime.fromtimestamp(directory.stat().st_mtime)  # noqa: DTZ006


def backup_sequence(directory: Path) -> int:
    """Returns N for a `YYYYMMDD-HHMMSS-N` directory name, 0 otherwise."""
    suffix = directory.name[len('YYYYMMDD-HHMMSS') :]
    if suffix.startswith('-') and suffix[1:].isdigit():
        return int(suffix[1:])
    return 0


class RestoreEngine:
    """Lists backup sets and copies their files back into place."""

    def __init__(self, config: Config) -> None:
        self.root = config.backup_root

    def list_backups(self) -> list[BackupSet]:
        """
        Returns every committed backup set, newest first. A directory without
        a manifest is an interrupted backup and is ignored.
        """
        if not self.root.is_dir():
            return []

        sets: list[BackupSet] = []
        for directory in self.root.iterdir():
            manifest = directory / MANIFEST
            if not manifest.is_file():
                continue
            try:
                entries = read_manifest(manifest)
            except ParseError as exc:
                logger.warning(str(exc))
                entries = []
            sets.append(BackupSet(parse_timestamp(directory), directory, entries))

        sets.sort(key=lambda s: (s.timestamp, backup_sequence(s.directory), s.name), reverse=True)
        return sets

    def select(self, name: str | None = None) -> BackupSet:
        """Returns the latest backup set, or the one with the given name."""
        backups = self.list_backups()
        if name is None:
            if not backups:
                err_msg = f'no backups found in {self.root!s}'
                raise ResolutionError(err_msg)
            return backups[0]
        for b in backups:
            if b.name == name:
                return b
        err_msg = f'backup {name!r} not found'
        raise ResolutionError(err_msg)

    def restore(self, name: str | None = None, dry_run: bool = False) -> BackupSet:
        """
        Copies each backed up file of the selected set back to its original
        path. The state being replaced is not backed up.

        Every entry is attempted; if any could not be restored an ApplyError
        naming them is raised once the rest are back in place.
        """
        backup = self.select(name)
        failed: list[str] = []
        for entry in backup.restorable:
            src = Path(entry.backup_path)  # type: ignore[arg-type]
            dst = Path(entry.path)
            if dry_run:
                logger.debug(f'dry run for restoring {dst!s}')
                continue
            if not src.is_file():
                logger.error(f'backup file {src!s} is missing, cannot restore {dst!s}')
                failed.append(f'{dst!s}: backup file {src!s} is missing')
                continue
            try:
                dst.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dst)
            except OSError as exc:
                logger.error(f'cannot restore {dst!s}: {exc}')
                failed.append(f'{dst!s}: {exc}')
                continue
            logger.info(f'restored {dst!s}')

        if failed:
            total = len(backup.restorable)
            err_msg = f'{len(failed)} of {total} files not restored from {backup.name}: '
            err_msg += '; '.join(failed)
            raise ApplyError(err_msg)
        return backup
