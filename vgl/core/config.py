"""Sidecar configuration management for VGL.

The sidecar is a small key/value file stored at the root of a working
tree, next to the version control metadata. It records how VGL sees the
repository (local directory and branch, optional remote). A second
sidecar lists the files the user has not yet decided to track or ignore.

Both files are replaced wholesale on every save and re-read on every
load; nothing is cached between calls.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from vgl.core.errors import SidecarWriteError
from vgl.core.repository import IGNORE_NAME, SIDECAR_NAME, UNDECIDED_NAME
from vgl.utils.fs import atomic_write_text

logger = logging.getLogger(__name__)

KEY_LOCAL_DIR = 'local.dir'
KEY_LOCAL_BRANCH = 'local.branch'
KEY_REMOTE_URL = 'remote.url'
KEY_REMOTE_BRANCH = 'remote.branch'

SIDECAR_HEADER = '# VGL Configuration'
UNDECIDED_HEADER = '# Undecided files (one path per line)'
STATE_HEADER = '# VGL state'

ENV_PREFIX = 'VGL_'
STATE_ENV = 'VGL_STATE'


_ESCAPES = {'n': '\n', 'r': '\r', 't': '\t', 'f': '\f'}
# characters that only need a backslash to lose their meaning
_LITERAL_ESCAPES = '\\ =:#!'


def _escape(value: str, key: bool = False) -> str:
    """
    Escape text for one sidecar line.

    Line breaks, tabs and backslashes are always escaped, as is leading
    whitespace (the reader strips it). Keys also escape the separators
    and a leading comment marker.
    """
    out = []
    for i, c in enumerate(value):
        if c == '\\':
            out.append('\\\\')
        elif c == '\n':
            out.append('\\n')
        elif c == '\r':
            out.append('\\r')
        elif c == '\t':
            out.append('\\t')
        elif c == '\f':
            out.append('\\f')
        elif c == ' ' and (i == 0 or key):
            out.append('\\ ')
        elif key and (c in '=:' or (i == 0 and c in '#!')):
            out.append('\\' + c)
        else:
            out.append(c)
    return ''.join(out)


def _unescape(value: str) -> str:
    out = []
    i = 0
    while i < len(value):
        c = value[i]
        if c == '\\' and i + 1 < len(value):
            nxt = value[i + 1]
            if nxt in _ESCAPES:
                out.append(_ESCAPES[nxt])
            elif nxt in _LITERAL_ESCAPES:
                out.append(nxt)
            else:
                out.append(c + nxt)
            i += 2
            continue
        out.append(c)
        i += 1
    return ''.join(out)


def _split_entry(line: str) -> Tuple[str, str]:
    """Split a line on its first unescaped '=' or ':'."""
    i = 0
    while i < len(line):
        c = line[i]
        if c == '\\':
            i += 2
            continue
        if c in '=:':
            return line[:i], line[i + 1:]
        i += 1
    return line, ''


def _is_comment(line: str) -> bool:
    return not line or line.startswith('#') or line.startswith('!')


class SidecarConfig:
    """
    Ordered string-to-string mapping persisted as a sidecar file.

    Values can be overridden at read time through environment variables
    named VGL_<KEY>, with dots replaced by underscores and the key
    upper-cased (VGL_REMOTE_URL overrides remote.url). Overrides are
    never written back.
    """

    def __init__(self, entries: Optional[Iterable[Tuple[str, str]]] = None):
        self._values: Dict[str, str] = {}
        if entries:
            if isinstance(entries, dict):
                entries = entries.items()
            for key, value in entries:
                self.set(key, value)

    @staticmethod
    def env_key(key: str) -> str:
        """Environment variable name that overrides key."""
        return ENV_PREFIX + key.replace('.', '_').replace('-', '_').upper()

    def get(self, key: str, fallback: Optional[str] = None) -> Optional[str]:
        """
        Get a configuration value.

        Priority order (highest to lowest):
        1. Environment variable (VGL_<KEY>)
        2. Stored value
        3. Fallback value
        """
        env_value = os.environ.get(self.env_key(key))
        if env_value is not None:
            return env_value
        return self._values.get(key, fallback)

    def set(self, key: str, value: str) -> None:
        """Set a value; new keys go to the end, existing keys keep their place."""
        key = str(key).strip()
        if not key:
            raise ValueError("Config key must not be empty")
        self._values[key] = '' if value is None else str(value)

    def unset(self, key: str) -> bool:
        """
        Remove a value.

        Returns:
            True if value was removed, False if it didn't exist
        """
        return self._values.pop(key, None) is not None

    def items(self) -> List[Tuple[str, str]]:
        """Stored entries in insertion order (no environment overrides)."""
        return list(self._values.items())

    def keys(self) -> List[str]:
        return list(self._values)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._values)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SidecarConfig):
            return NotImplemented
        return self.items() == other.items()

    def __repr__(self) -> str:
        return f"SidecarConfig({self._values!r})"

    def serialize(self, header: str = SIDECAR_HEADER) -> str:
        """Render as key=value lines in insertion order."""
        lines = [header]
        for key, value in self._values.items():
            lines.append(f"{_escape(key, key=True)}={_escape(value)}")
        return '\n'.join(lines) + '\n'

    @classmethod
    def parse(cls, text: str) -> 'SidecarConfig':
        """
        Parse key=value text.

        Blank lines and lines starting with '#' or '!' are skipped. Each
        remaining line splits on its first unescaped '=' or ':'; a line
        with neither is a key with an empty value. Whitespace before the
        value is dropped unless escaped. A repeated key keeps its first
        position and its last value.
        """
        config = cls()
        for raw in text.split('\n'):
            if raw.endswith('\r'):
                raw = raw[:-1]
            line = raw.lstrip()
            if _is_comment(line):
                continue

            key, value = _split_entry(line)
            key = _unescape(key.strip())
            if key.strip():
                config.set(key, _unescape(value.lstrip(' \t\f')))
        return config


class SidecarConfigStore:
    """Loads and saves the sidecar file at a repository root."""

    @staticmethod
    def path_for(root: Union[str, Path]) -> Path:
        return Path(root) / SIDECAR_NAME

    @classmethod
    def load(cls, root: Union[str, Path]) -> SidecarConfig:
        """
        Read the sidecar configuration of a repository.

        Never raises for a missing or unreadable file; an empty
        configuration is returned instead.

        Args:
            root: Repository root directory

        Returns:
            SidecarConfig with the stored entries in file order
        """
        return _load_file(cls.path_for(root))

    @classmethod
    def save(cls, root: Union[str, Path], config: SidecarConfig) -> None:
        """
        Replace the sidecar file with config.

        The file is written to a temporary sibling and atomically moved
        into place, so concurrent readers see either the old or the new
        content. Prior contents are not merged.

        Raises:
            SidecarWriteError: If the file cannot be written
        """
        _save_file(cls.path_for(root), config.serialize())


def _load_file(path: Path) -> SidecarConfig:
    if not path.is_file():
        logger.debug("No sidecar at %s", path)
        return SidecarConfig()
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return SidecarConfig()
    return SidecarConfig.parse(text)


def _save_file(path: Path, content: str) -> None:
    try:
        atomic_write_text(path, content)
    except OSError as e:
        raise SidecarWriteError(path, e.strerror or str(e)) from e


def normalize_repo_relative_path(path: str) -> str:
    """
    Normalize a user-supplied path to the repo-relative form.

    Converts backslashes to '/', strips leading './' segments and a
    leading '/', and maps '.' to the empty string.
    """
    normalized = path.strip().replace('\\', '/')
    while normalized.startswith('./'):
        normalized = normalized[2:]
    if normalized == '.':
        return ''
    if normalized.startswith('/'):
        normalized = normalized[1:]
    return normalized


class UndecidedFileList:
    """Persisted list of paths the user has not classified yet."""

    @staticmethod
    def path_for(root: Union[str, Path]) -> Path:
        return Path(root) / UNDECIDED_NAME

    @classmethod
    def parse(cls, text: str) -> List[str]:
        paths: List[str] = []
        seen = set()
        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith('#'):
                continue
            path = normalize_repo_relative_path(line)
            if path and path not in seen:
                seen.add(path)
                paths.append(path)
        return paths

    @classmethod
    def load(cls, root: Union[str, Path]) -> List[str]:
        """
        Read the undecided paths of a repository.

        Returns:
            Normalized paths in file order without duplicates; empty
            when the file is missing or unreadable
        """
        path = cls.path_for(root)
        if not path.is_file():
            return []
        try:
            text = path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return []
        return cls.parse(text)

    @classmethod
    def save(cls, root: Union[str, Path], paths: Iterable[str]) -> None:
        """
        Replace the undecided list. An empty list removes the file.

        Raises:
            SidecarWriteError: If the file cannot be written or removed
        """
        target = cls.path_for(root)
        entries = cls.parse('\n'.join(paths))

        if not entries:
            try:
                target.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise SidecarWriteError(target, e.strerror or str(e)) from e
            return

        _save_file(target, '\n'.join([UNDECIDED_HEADER] + entries) + '\n')


def ensure_ignore_has_sidecar(root: Union[str, Path]) -> bool:
    """
    Make sure the ignore file lists the sidecar files.

    Existing content is preserved; missing entries are appended.

    Returns:
        True if the ignore file was changed
    """
    ignore_path = Path(root) / IGNORE_NAME
    content = ''
    if ignore_path.is_file():
        content = ignore_path.read_text(encoding='utf-8')

    present = {line.strip() for line in content.splitlines()}
    missing = [name for name in (SIDECAR_NAME, UNDECIDED_NAME) if name not in present]
    if not missing:
        return False

    if content and not content.endswith('\n'):
        content += '\n'
    content += ''.join(f"{name}\n" for name in missing)

    _save_file(ignore_path, content)
    return True


def default_state_path() -> Path:
    """Location of the user-level state file (VGL_STATE overrides it)."""
    override = os.environ.get(STATE_ENV)
    if override:
        return Path(override)
    return Path.home() / '.vgl' / 'state'


def load_state(path: Optional[Union[str, Path]] = None) -> SidecarConfig:
    """Read the user-level state; empty when absent or unreadable."""
    return _load_file(Path(path) if path else default_state_path())


def save_state(config: SidecarConfig, path: Optional[Union[str, Path]] = None) -> None:
    """
    Replace the user-level state file.

    Raises:
        SidecarWriteError: If the file cannot be written
    """
    _save_file(Path(path) if path else default_state_path(), config.serialize(STATE_HEADER))
