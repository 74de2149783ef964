from __future__ import annotations

from pathlib import Path
from typing import Any
from typing import Callable

import pytest

from tests.conftest import digest
from themeshift.__main__ import main
from themeshift.config import Config

Capsys = pytest.CaptureFixture[str]


@pytest.fixture
def nord(write_theme: Callable[..., Path], theme_data: dict[str, Any]) -> Path:
    return write_theme('nord', theme_data)


def test_apply_by_name(config: Config, nord: Path, targets: dict[str, Path], capsys: Capsys):
    assert main(['nord', '-c', 'never'], config=config) == 0
    out = capsys.readouterr().out
    assert '[shell_rc] shell_rc' in out
    assert '8 targets updated' in out
    assert 'BAT_THEME' in targets['bashrc'].read_text()


def test_apply_by_path(config: Config, nord: Path, targets: dict[str, Path]):
    assert main([str(nord), '-c', 'never'], config=config) == 0
    assert 'colorscheme nord' in targets['vimrc'].read_text()


def test_apply_dry_run_with_diff(
    config: Config, nord: Path, targets: dict[str, Path], capsys: Capsys
):
    before = digest(*targets.values())
    assert main(['nord', '-d', '-D', '-c', 'never'], config=config) == 0
    assert digest(*targets.values()) == before
    out = capsys.readouterr().out
    assert 'dry run' in out
    assert '+ export BAT_THEME=Nord' in out


def test_dry_run_diff_with_undecodable_file(
    config: Config, nord: Path, targets: dict[str, Path], capsys: Capsys
):
    targets['profile'].write_bytes('# old\r\n'.encode('utf-16'))
    assert main(['nord', '-d', '-D', '-c', 'never'], config=config) == 0
    out = capsys.readouterr().out
    assert 'is not UTF-8 text' in out
    assert '+ export BAT_THEME=Nord' in out


def test_diff_requires_dry_run(config: Config, nord: Path, capsys: Capsys):
    assert main(['nord', '-D'], config=config) == 1
    assert "'--diff' requires '--dry-run'" in capsys.readouterr().err


def test_apply_skip_backup(config: Config, nord: Path):
    assert main(['nord', '-s', '-c', 'never'], config=config) == 0
    assert not config.backup_root.exists()


def test_apply_reports_failures(
    config: Config, nord: Path, targets: dict[str, Path], capsys: Capsys
):
    targets['editor'].write_text('{"a": ')
    assert main(['nord', '-c', 'never'], config=config) == 1
    assert '1 errors occurred' in capsys.readouterr().out


def test_theme_not_found(config: Config, capsys: Capsys):
    assert main(['gruvbox'], config=config) == 1
    assert "theme 'gruvbox' not found" in capsys.readouterr().out


def test_list_themes(config: Config, nord: Path, write_theme: Callable[..., Path], capsys: Capsys):
    write_theme('broken', {'name': 'broken', 'kitty': {}})
    assert main(['-l', '-c', 'never'], config=config) == 0
    out = capsys.readouterr().out
    assert 'nord' in out
    assert '(7 targets)' in out
    assert "unknown target 'kitty'" in out


def test_backups_and_restore(
    config: Config, nord: Path, targets: dict[str, Path], capsys: Capsys
):
    original = targets['bashrc'].read_text()
    main(['nord', '-c', 'never'], config=config)
    capsys.readouterr()

    assert main(['-b', '-c', 'never'], config=config) == 0
    (backup_dir,) = config.backup_root.iterdir()
    assert backup_dir.name in capsys.readouterr().out

    assert main(['-r', '-d', '-c', 'never'], config=config) == 0
    assert 'dry run' in capsys.readouterr().out
    assert targets['bashrc'].read_text() != original

    assert main(['-r', backup_dir.name, '-c', 'never'], config=config) == 0
    assert targets['bashrc'].read_text() == original


def test_restore_reports_missing_backup_file(
    config: Config, nord: Path, targets: dict[str, Path], capsys: Capsys
):
    main(['nord', '-c', 'never'], config=config)
    (backup_dir,) = config.backup_root.iterdir()
    for copy in backup_dir.rglob('.bashrc'):
        copy.unlink()
    capsys.readouterr()

    assert main(['-r', '-c', 'never'], config=config) == 1
    out = capsys.readouterr().out
    assert '1 of' in out
    assert 'files not restored' in out
    assert '[shell_rc]' not in out


def test_restore_without_backups(config: Config, capsys: Capsys):
    assert main(['-r'], config=config) == 1
    assert 'no backups found' in capsys.readouterr().out


def test_no_arguments_prints_help(config: Config, capsys: Capsys):
    assert main([], config=config) == 1
    assert 'Usage: themeshift' in capsys.readouterr().out
