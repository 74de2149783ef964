from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from collections.abc import Sequence
from typing import Any

from themeshift.errors import ParseError

logger = logging.getLogger(__name__)

JSONDocument = dict[str, Any]

ACCENT_RE = re.compile(r'^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{8})$')
CLOSING_RE = re.compile(r'\s*[}\]]')
CRLF = '\r\n'
BOM = '\ufeff'

# profile keys merged into the terminal's `profiles.defaults`
PROFILE_DEFAULT_KEYS = frozenset(
    {
        'antialiasingMode',
        'backgroundImage',
        'backgroundImageOpacity',
        'colorScheme',
        'cursorColor',
        'cursorShape',
        'experimental.retroTerminalEffect',
        'font',
        'fontFace',
        'fontSize',
        'fontWeight',
        'intenseTextStyle',
        'opacity',
        'padding',
        'useAcrylic',
    }
)


def strip_json_comments(text: str) -> str:
    """
    Removes `//` and `/* */` comments and trailing commas, leaving string
    literals untouched. Terminal and editor settings are JSON with comments.
    """
    out: list[str] = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        c = text[i]
        if in_string:
            out.append(c)
            if c == '\\' and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if c == '"':
                in_string = False
            i += 1
            continue
        if c == '"':
            in_string = True
            out.append(c)
            i += 1
        elif text.startswith('//', i):
            end = text.find('\n', i)
            i = n if end == -1 else end
        elif text.startswith('/*', i):
            end = text.find('*/', i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(c)
            i += 1
    return _drop_trailing_commas(''.join(out))


def _drop_trailing_commas(text: str) -> str:
    out: list[str] = []
    in_string = False
    escaped = False
    for i, c in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif c == '\\':
                escaped = True
            elif c == '"':
                in_string = False
        elif c == '"':
            in_string = True
        elif c == ',' and CLOSING_RE.match(text, i + 1):
            continue
        out.append(c)
    return ''.join(out)


def load_document(text: str, name: str) -> JSONDocument:
    """Parses a settings document into a dict, ignoring a leading BOM."""
    text = text.removeprefix(BOM)
    if not text.strip():
        return {}
    try:
        doc = json.loads(strip_json_comments(text))
    except json.JSONDecodeError as exc:
        err_msg = f'{name}: malformed settings document: {exc}'
        raise ParseError(err_msg) from exc
    if not isinstance(doc, dict):
        err_msg = f'{name}: settings document is not an object'
        raise ParseError(err_msg)
    return doc


def dump_document(doc: JSONDocument, like: str = '') -> str:
    """Serializes a settings document, keeping the BOM of the text it came from."""
    bom = BOM if like.startswith(BOM) else ''
    return bom + json.dumps(doc, indent=4, ensure_ascii=False) + '\n'


def upsert_scheme(doc: JSONDocument, scheme: Mapping[str, Any]) -> None:
    """Replaces any scheme sharing the new scheme's name, then appends it."""
    name = scheme['name']
    schemes = doc.get('schemes')
    if not isinstance(schemes, list):
        schemes = []
    kept = [s for s in schemes if not (isinstance(s, dict) and s.get('name') == name)]
    if len(kept) != len(schemes):
        logger.debug(f'replacing existing scheme {name!r}')
    kept.append(dict(scheme))
    doc['schemes'] = kept


def _profiles(doc: JSONDocument) -> tuple[dict[str, Any], list[Any]]:
    """
    Returns the `profiles.defaults` object and the profile list, converting
    the legacy form where `profiles` is a bare list.
    """
    profiles = doc.get('profiles')
    if isinstance(profiles, list):
        profiles = {'list': profiles}
    elif not isinstance(profiles, dict):
        profiles = {}
    doc['profiles'] = profiles
    defaults = profiles.setdefault('defaults', {})
    entries = profiles.setdefault('list', [])
    return defaults, entries


def merge_profile_defaults(doc: JSONDocument, defaults: Mapping[str, Any]) -> None:
    current, _ = _profiles(doc)
    for key, value in defaults.items():
        if key not in PROFILE_DEFAULT_KEYS:
            logger.warning(f'profile default {key!r} not recognized, ignoring')
            continue
        current[key] = value


def _matches(entry: Mapping[str, Any], configured: Mapping[str, Any]) -> bool:
    name = configured.get('name')
    source = configured.get('source')
    if name and entry.get('name') == name:
        return True
    return bool(source and entry.get('source') == source)


def merge_profiles(doc: JSONDocument, configured: Sequence[Mapping[str, Any]]) -> None:
    """Updates only the profiles whose name or source matches a configured entry."""
    _, entries = _profiles(doc)
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        for conf in configured:
            if not _matches(entry, conf):
                continue
            for key, value in conf.items():
                if key in ('name', 'source'):
                    continue
                entry[key] = value


def merge_terminal(text: str, meta: Mapping[str, Any], name: str = 'terminal') -> str:
    doc = load_document(text, name)
    for key, value in (meta.get('settings') or {}).items():
        doc[key] = value
    if meta.get('scheme'):
        upsert_scheme(doc, meta['scheme'])
    if meta.get('profile_defaults'):
        merge_profile_defaults(doc, meta['profile_defaults'])
    if meta.get('profiles'):
        merge_profiles(doc, meta['profiles'])
    return dump_document(doc, like=text)


def merge_settings(text: str, settings: Mapping[str, Any], name: str = 'editor') -> str:
    """Replaces or inserts top-level keys of a settings document."""
    doc = load_document(text, name)
    for key, value in settings.items():
        doc[key] = value
    return dump_document(doc, like=text)


def render_block(marker: str, block: str, end_marker: str) -> str:
    return f'{marker}\n{block.rstrip(CRLF)}\n{end_marker}'


def replace_block(content: str | None, marker: str, block: str, end_marker: str) -> str:
    """
    Writes `block` between `marker` and `end_marker` in a text file.

    An existing marker region is replaced wholesale (markers included), a
    file without one gets the region appended after a blank line, and an
    absent or empty file becomes just the region.
    """
    rendered = render_block(marker, block, end_marker)
    if not content:
        return rendered

    pattern = re.compile(re.escape(marker) + '.*?' + re.escape(end_marker), re.DOTALL)
    if pattern.search(content):
        return pattern.sub(lambda _: rendered, content, count=1)

    sep = '\n' if content.endswith('\n') else '\n\n'
    return content + sep + rendered


def parse_accent_color(value: str | int) -> int | None:
    """
    Parses `RRGGBB` or `AARRGGBB` (optionally prefixed by `#`) into a 32-bit
    unsigned value; six digits get a fully opaque alpha channel.
    """
    m = ACCENT_RE.match(str(value).strip())
    if not m:
        return None
    digits = m.group(1)
    if len(digits) == 6:  # noqa: PLR2004
        digits = 'FF' + digits
    return int(digits, 16)
