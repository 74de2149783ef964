from __future__ import annotations

import difflib
import os

# colors
BLUE = '\033[34m'
CYAN = '\033[36m'
GRAY = '\33[37m'
GREEN = '\033[32m'
MAGENTA = '\033[35m'
RED = '\033[31m'
YELLOW = '\033[33m'
END = '\033[0m'
# styles
BOLD = '\033[1m'
ITALIC = '\033[3m'
UNDERLINE = '\033[4m'


class Console:
    color: bool = False


def colorize(text: str, *styles: str) -> str:
    """Returns the given text with the specified styles applied."""
    # https://no-color.org/
    if os.getenv('NO_COLOR'):
        return text
    if not styles or not Console.color:
        return text
    return ''.join(styles) + text + END


class Differ:
    """Represents a diff between two strings"""

    def changes(self, old: str, new: str) -> str:
        """Returns only the added and removed lines, colorized."""
        if old == new:
            return ''

        r: list[str] = []
        for line in difflib.ndiff(old.splitlines(), new.splitlines()):
            if line.startswith('+ '):
                r.append(colorize(line, GREEN))
            elif line.startswith('- '):
                r.append(colorize(line, RED))
        return '\n'.join(r)
