from __future__ import annotations

from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from tests.conftest import digest
from themeshift.backup import BackupStore
from themeshift.config import Config
from themeshift.errors import ApplyError
from themeshift.errors import ResolutionError
from themeshift.executor import Executor
from themeshift.restore import RestoreEngine
from themeshift.restore import backup_sequence
from themeshift.restore import parse_timestamp
from themeshift.steps import build_plan
from themeshift.theme import TargetKind
from themeshift.theme import Theme


def test_round_trip(config: Config, theme: Theme, targets: dict[str, Path]):
    before = {p: p.read_bytes() for p in targets.values() if p.exists()}
    result = Executor(config).execute(build_plan(theme))
    assert targets['bashrc'].read_bytes() != before[targets['bashrc']]

    restored = RestoreEngine(config).restore()
    assert restored.directory == result.backup_directory
    for path, content in before.items():
        assert path.read_bytes() == content


def test_restore_recreates_deleted_file(config: Config, theme: Theme, targets: dict[str, Path]):
    Executor(config).execute(build_plan(theme))
    targets['bashrc'].unlink()
    RestoreEngine(config).restore()
    assert targets['bashrc'].read_text() == 'export PAGER=less\n'


def test_list_backups_newest_first(config: Config, tmp_path: Path):
    store = BackupStore(config.backup_root)
    older = store.create([], datetime(2026, 1, 1, 8, 0, 0))
    newer = store.create([], datetime(2026, 3, 1, 8, 0, 0))
    same_second = store.create([], datetime(2026, 3, 1, 8, 0, 0))
    names = [b.name for b in RestoreEngine(config).list_backups()]
    assert names == [same_second.name, newer.name, older.name]


def test_list_backups_orders_by_sequence(config: Config):
    store = BackupStore(config.backup_root)
    created = [store.create([], datetime(2026, 3, 1, 8, 0, 0)) for _ in range(11)]
    names = [b.name for b in RestoreEngine(config).list_backups()]
    assert names[0] == '20260301-080000-10'
    assert names == [b.name for b in reversed(created)]
    assert RestoreEngine(config).select().name == '20260301-080000-10'


@pytest.mark.parametrize(
    'name, expected',
    [
        ('20260301-080000', 0),
        ('20260301-080000-1', 1),
        ('20260301-080000-10', 10),
        ('20260301-080000-x', 0),
        ('manual', 0),
    ],
)
def test_backup_sequence(tmp_path: Path, name: str, expected: int):
    assert backup_sequence(tmp_path / name) == expected


def test_list_backups_tolerates_bad_manifest(config: Config, caplog: pytest.LogCaptureFixture):
    broken = config.backup_root / '20260101-000000'
    broken.mkdir(parents=True)
    (broken / 'manifest.json').write_text('{oops')
    (config.backup_root / '20260102-000000').mkdir()  # interrupted, no manifest

    (backup,) = RestoreEngine(config).list_backups()
    assert backup.name == '20260101-000000'
    assert backup.entries == []
    assert backup.timestamp == datetime(2026, 1, 1)
    assert 'cannot read manifest' in caplog.text


def test_list_backups_without_root(config: Config):
    assert RestoreEngine(config).list_backups() == []


def test_restore_by_name(config: Config, tmp_path: Path):
    rc = tmp_path / '.bashrc'
    store = BackupStore(config.backup_root)
    rc.write_text('one')
    first = store.create([(TargetKind.SHELL_RC, str(rc))], datetime(2026, 1, 1))
    rc.write_text('two')
    store.create([(TargetKind.SHELL_RC, str(rc))], datetime(2026, 1, 2))
    rc.write_text('three')

    engine = RestoreEngine(config)
    assert engine.restore(first.name).name == '20260101-000000'
    assert rc.read_text() == 'one'
    engine.restore()
    assert rc.read_text() == 'two'


def test_restore_not_found(config: Config):
    engine = RestoreEngine(config)
    with pytest.raises(ResolutionError, match='no backups found'):
        engine.restore()
    BackupStore(config.backup_root).create([], datetime(2026, 1, 1))
    with pytest.raises(ResolutionError, match="backup '20990101-000000' not found"):
        engine.restore('20990101-000000')


def test_restore_missing_backup_file(config: Config, theme: Theme, targets: dict[str, Path]):
    before = {p: p.read_bytes() for p in targets.values() if p.exists()}
    result = Executor(config).execute(build_plan(theme))
    lost = next(e for e in result.backup.restorable if e.path == str(targets['bashrc']))
    Path(lost.backup_path).unlink()

    with pytest.raises(ApplyError, match=r'1 of \d+ files not restored') as exc:
        RestoreEngine(config).restore()
    assert str(targets['bashrc']) in str(exc.value)
    assert 'BAT_THEME' in targets['bashrc'].read_text()
    assert targets['terminal'].read_bytes() == before[targets['terminal']]
    assert targets['editor'].read_bytes() == before[targets['editor']]


def test_restore_copy_error(config: Config, theme: Theme, targets: dict[str, Path]):
    result = Executor(config).execute(build_plan(theme))
    total = len(result.backup.restorable)
    with patch('themeshift.restore.shutil.copy2', side_effect=OSError('permission denied')):
        with pytest.raises(ApplyError, match=f'{total} of {total} files not restored') as exc:
            RestoreEngine(config).restore()
    assert 'permission denied' in str(exc.value)
    assert str(targets['terminal']) in str(exc.value)


def test_restore_dry_run(config: Config, theme: Theme, targets: dict[str, Path]):
    Executor(config).execute(build_plan(theme))
    after_apply = digest(*targets.values())
    backup = RestoreEngine(config).restore(dry_run=True)
    assert digest(*targets.values()) == after_apply
    assert backup.restorable


def test_restore_does_not_back_up(config: Config, theme: Theme):
    Executor(config).execute(build_plan(theme))
    engine = RestoreEngine(config)
    engine.restore()
    assert len(engine.list_backups()) == 1


def test_parse_timestamp(tmp_path: Path):
    assert parse_timestamp(tmp_path / '20261017-101500-2') == datetime(2026, 10, 17, 10, 15)
    odd = tmp_path / 'manual'
    odd.mkdir()
    assert isinstance(parse_timestamp(odd), datetime)
