from __future__ import annotations


class ThemeshiftError(Exception):
    pass


class ResolutionError(ThemeshiftError):
    """A theme or backup could not be found."""


class TargetMissingError(ThemeshiftError):
    """A settings document that must be merged into does not exist."""


class ParseError(ThemeshiftError):
    """A theme definition or a settings document is malformed."""


class ApplyError(ThemeshiftError):
    pass


class BackupError(ThemeshiftError):
    """The promised backup could not be written."""
