from __future__ import annotations

import argparse
import logging
import sys
import textwrap

from themeshift import __appname__
from themeshift import __version__
from themeshift.config import APP_HOME
from themeshift.config import Config
from themeshift.console import BLUE
from themeshift.console import BOLD
from themeshift.console import CYAN
from themeshift.console import END
from themeshift.console import GRAY
from themeshift.console import GREEN
from themeshift.console import ITALIC
from themeshift.console import MAGENTA
from themeshift.console import RED
from themeshift.console import UNDERLINE
from themeshift.console import YELLOW
from themeshift.console import Console
from themeshift.console import Differ
from themeshift.console import colorize
from themeshift.errors import ThemeshiftError
from themeshift.executor import ExecutionResult
from themeshift.executor import Executor
from themeshift.files import Files
from themeshift.restore import RestoreEngine
from themeshift.steps import PlanStep
from themeshift.steps import StepResult
from themeshift.steps import StepStatus
from themeshift.steps import build_plan
from themeshift.theme import find_theme
from themeshift.theme import get_filenames
from themeshift.theme import load_theme

logger = logging.getLogger(__name__)

LATEST = '@latest'
HELP = textwrap.dedent(
    f"""Usage: {__appname__} [-h] [-d] [-s] [-D] [-l] [-b] [-r [NAME]] [-c COLOR] [-V] [-v] [theme]

    Apply a theme to terminal, shell, editor and desktop settings, with backups.

Options:
    theme               Theme name or path to a theme file
    -l, --list          List themes found
    -b, --backups       List backups, newest first
    -r, --restore       Restore the latest backup, or the one named
    -d, --dry-run       Do not make any changes
    -s, --skip-backup   Apply without taking a backup (unsafe)
    -D, --diff          Show changes in a dry run
    -c, --color         Enable color [always|never] (default: always)
    -V, --version       Print version and exit
    -v, --verbose       Increase output verbosity
    -h, --help          Print this help message

locations:
  {APP_HOME}"""  # noqa: E501
)

STATUS_STYLE = {
    StepStatus.APPLIED: (ITALIC, BLUE),
    StepStatus.UNCHANGED: (ITALIC, YELLOW),
    StepStatus.SKIPPED: (ITALIC, YELLOW),
    StepStatus.DRY_RUN: (ITALIC, CYAN),
    StepStatus.FAILED: (ITALIC, RED),
}


def version() -> None:
    print(f'{__appname__} {__version__}')


def logme(s: str) -> None:
    print(f'{__appname__} {__version__}: {s}')


def format_result(r: StepResult) -> str:
    tag = colorize(f'[{r.step.target}]', BOLD, RED if r.status == StepStatus.FAILED else MAGENTA)
    status = colorize(str(r.status), *STATUS_STYLE[r.status])
    line = f'{tag} {r.step.name} {colorize(r.step.path, GRAY)} {status}'
    if r.message and r.status != StepStatus.FAILED:
        line += f' ({r.message})'
    return line


def preview(step: PlanStep) -> str:
    """Returns the diff a file step would produce."""
    if not step.is_file:
        return ''
    try:
        current = Files.read(Files.get_path(step.path))
        new = step.render(current)
    except ThemeshiftError as exc:
        return colorize(str(exc), ITALIC, RED)
    return Differ().changes(current or '', new)


def print_list_themes(config: Config) -> None:
    """Prints a list of all themes in the themes directories."""
    themes_files = get_filenames(config.theme_dirs)
    if not themes_files:
        print(f'{GRAY}>{END} no themes found')
        return

    max_len = max(len(t.stem) for t in themes_files)
    t = colorize('[theme]', BOLD, BLUE)
    for fn in themes_files:
        try:
            theme = load_theme(fn)
        except ThemeshiftError as exc:
            print(f'{colorize("[theme]", BOLD, RED)} {fn.stem:<{max_len}} {exc}')
            continue
        targets = colorize(f'({len(theme.targets)} targets)', ITALIC, GRAY)
        print(f'{t} {theme.name:<{max_len}} {targets} {theme.description}')


def print_backups(config: Config) -> int:
    backups = RestoreEngine(config).list_backups()
    if not backups:
        print(f'{GRAY}>{END} no backups found')
        return 0
    for b in backups:
        files = colorize(f'({len(b.restorable)} files)', ITALIC, GRAY)
        print(f'{colorize("[backup]", BOLD, BLUE)} {b.name} {files}')
    return 0


def print_summary(result: ExecutionResult) -> None:
    if result.backup is not None:
        print(f'{GRAY}\n>{END} backup {colorize(result.backup.name, BOLD, BLUE)}')
    applied = colorize(str(len(result.applied)), BOLD, BLUE)
    print(f'{GRAY}>{END} {applied} targets updated')
    if result.failed:
        print(f'{GRAY}>{END} {colorize(str(result.failed), BOLD, RED)} errors occurred')
        for f in result.failures:
            print(f'  {colorize(f.step.name, BOLD)}: {f.error}')


def apply_theme(args: argparse.Namespace, config: Config) -> int:
    theme = load_theme(find_theme(args.theme, config.theme_dirs))
    print(f'{GRAY}>{END} {colorize(theme.name, UNDERLINE, BOLD, BLUE)} theme', end='\n\n')

    plan = build_plan(theme)
    if not plan:
        print(f'{GRAY}>{END} nothing to apply')
        return 0

    result = Executor(config).execute(plan, dry_run=args.dry_run, skip_backup=args.skip_backup)
    for r in result.results:
        print(format_result(r))
        if args.diff and r.status == StepStatus.DRY_RUN and (diff := preview(r.step)):
            print(diff)

    if args.dry_run:
        return 0
    print_summary(result)
    return 1 if result.failed else 0


def restore_backup(args: argparse.Namespace, config: Config) -> int:
    name = None if args.restore == LATEST else args.restore
    backup = RestoreEngine(config).restore(name, dry_run=args.dry_run)
    status = colorize('restored', ITALIC, GREEN)
    if args.dry_run:
        status = colorize('dry run', ITALIC, CYAN)
    for entry in backup.restorable:
        print(f'{colorize(f"[{entry.target}]", BOLD, MAGENTA)} {entry.path} {status}')
    print(f'{GRAY}\n>{END} backup {colorize(backup.name, BOLD, BLUE)}')
    return 0


def parse_and_exit(args: argparse.Namespace, config: Config) -> None | int:
    """Parses command-line arguments and performs corresponding actions."""
    if args.version:
        version()
        return 0
    if args.help:
        print(HELP)
        return 0
    if args.list:
        version()
        print('\nThemes found:')
        print_list_themes(config)
        return 0
    if args.backups:
        return print_backups(config)
    if args.restore:
        return None
    if args.diff and not args.dry_run:
        print(f"{__appname__}: '--diff' requires '--dry-run' (-d)", file=sys.stderr)
        return 1
    if not args.theme:
        print(HELP)
        return 1
    return None


class Setup:
    """
    A utility class for initial setup tasks such as argument parsing and
    logging configuration.
    """

    @staticmethod
    def init(argv: list[str] | None = None) -> argparse.Namespace:
        """Initializes the application setup."""
        args = Setup.args(argv)
        Setup.logging(args.verbose)
        Console.color = args.color == 'always'
        logging.debug(vars(args))
        return args

    @staticmethod
    def logging(verbose: int) -> None:
        """
        Configures the logging format and level based on the verbosity.
        """
        logging_format = '[{levelname:^7}] {name:<18}: {message} (line:{lineno})'
        levels = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]
        level = levels[min(verbose, len(levels) - 1)]
        logging.basicConfig(
            level=level,
            format=logging_format,
            style='{',
            handlers=[logging.StreamHandler()],
        )

    @staticmethod
    def args(argv: list[str] | None = None) -> argparse.Namespace:
        """Parses and returns command-line arguments."""
        parser = argparse.ArgumentParser(
            formatter_class=argparse.RawTextHelpFormatter,
            add_help=False,
        )
        parser.add_argument('theme', nargs='?')
        parser.add_argument('-l', '--list', action='store_true')
        parser.add_argument('-b', '--backups', action='store_true')
        parser.add_argument('-r', '--restore', nargs='?', const=LATEST, metavar='NAME')
        parser.add_argument('-d', '--dry-run', action='store_true')
        parser.add_argument('-s', '--skip-backup', action='store_true')
        parser.add_argument('-D', '--diff', action='store_true')
        parser.add_argument(
            '-c', '--color', type=str, choices=['always', 'never'], default='always'
        )
        parser.add_argument('-V', '--version', action='store_true')
        parser.add_argument('-h', '--help', action='store_true')
        parser.add_argument('-v', '--verbose', action='count', default=0)
        return parser.parse_args(argv)


def main(argv: list[str] | None = None, config: Config | None = None) -> int:
    args = Setup.init(argv)
    config = config or Config.from_env()
    if (retcode := parse_and_exit(args, config)) is not None:
        return retcode

    try:
        if args.restore:
            return restore_backup(args, config)
        return apply_theme(args, config)
    except ThemeshiftError as exc:
        logme(str(exc))
        return 1


if __name__ == '__main__':
    sys.exit(main())
