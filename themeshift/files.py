from __future__ import annotations

import logging
import os
from pathlib import Path

from themeshift.errors import ParseError

logger = logging.getLogger(__name__)


class Files:
    """
    A utility class for handling file operations such as reading, writing, and
    manipulating file paths
    """

    @staticmethod
    def get_path(f: str | Path) -> Path:
        """
        Expands a file path (environment variables and '~' for the home
        directory) and returns it as an absolute Path object.
        """
        return Path(os.path.expandvars(str(f))).expanduser().absolute()

    @staticmethod
    def read(f: Path) -> str | None:
        """Returns the contents of a file, or None if it does not exist."""
        if not f.is_file():
            logger.debug(f'file={f!s} does not exist')
            return None
        try:
            with f.open(mode='r', encoding='utf-8', newline='') as file:
                return file.read()
        except UnicodeDecodeError as exc:
            err_msg = f'file {f!s} is not UTF-8 text: {exc}'
            raise ParseError(err_msg) from exc

    @staticmethod
    def write(f: Path, content: str) -> None:
        """Writes content to a file, creating parent directories as needed."""
        Files.mkdir(f.parent)
        with f.open(mode='w', encoding='utf-8', newline='') as file:
            file.write(content)

    @staticmethod
    def mkdir(path: Path) -> None:
        """
        Creates a directory at the specified path if it does not already exist.
        """
        if path.is_file():
            err_msg = f'Cannot create directory: {path!s} is a file.'
            raise NotADirectoryError(err_msg)
        if path.exists():
            return

        logger.info(f'creating {path=}')
        path.mkdir(parents=True, exist_ok=True)
