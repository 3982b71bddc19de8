"""Glob expansion into concrete repo-relative file lists."""

import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Union

from vgl.utils.nested import METADATA_DIR, list_nested_repos, under_any

logger = logging.getLogger(__name__)

WILDCARD_TOKENS = ('*', '.')
GLOB_CHARS = '*?['


class GlobError(ValueError):
    """Raised for a glob that cannot be compiled."""


def has_wildcard(pattern: str) -> bool:
    """Check if a pattern contains glob metacharacters."""
    return any(c in pattern for c in GLOB_CHARS)


def normalize_pattern(pattern: str) -> str:
    """Strip whitespace, use '/' separators and drop leading './'."""
    normalized = pattern.strip().replace('\\', '/')
    while normalized.startswith('./'):
        normalized = normalized[2:]
    return normalized


def glob_to_regex(pattern: str) -> Pattern:
    """
    Compile a glob into a regex matched against whole repo-relative paths.

    Supported syntax:
    - ** matches across path segments ('**/' also matches zero segments)
    - * matches anything except /
    - ? matches a single character except /
    - [...] character class, [!...] negated

    Raises:
        GlobError: If the pattern is malformed
    """
    regex_parts = []
    i = 0

    while i < len(pattern):
        c = pattern[i]

        if c == '*':
            if i + 1 < len(pattern) and pattern[i + 1] == '*':
                if i + 2 < len(pattern) and pattern[i + 2] == '/':
                    # **/ matches zero or more directories
                    regex_parts.append('(?:.*/)?')
                    i += 3
                else:
                    regex_parts.append('.*')
                    i += 2
            else:
                regex_parts.append('[^/]*')
                i += 1
        elif c == '?':
            regex_parts.append('[^/]')
            i += 1
        elif c == '[':
            j = i + 1
            if j < len(pattern) and pattern[j] == '!':
                j += 1
            if j < len(pattern) and pattern[j] == ']':
                j += 1
            while j < len(pattern) and pattern[j] != ']':
                j += 1
            if j >= len(pattern):
                raise GlobError(f"Unterminated character class in {pattern!r}")

            body = pattern[i + 1:j].replace('\\', '\\\\')
            if body.startswith('!'):
                body = '^' + body[1:]
            elif body.startswith('^'):
                body = '\\' + body
            regex_parts.append(f'[{body}]')
            i = j + 1
        else:
            regex_parts.append(re.escape(c))
            i += 1

    try:
        return re.compile(''.join(regex_parts))
    except re.error as e:
        raise GlobError(f"Invalid glob {pattern!r}: {e}") from e


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    """
    Check if a repo-relative path matches any of the patterns.

    '*' and '.' match everything. A literal pattern matches the path
    itself or anything under it as a directory; a bare literal name also
    matches by basename. Malformed globs never match.
    """
    if not path:
        return False
    path = path.replace('\\', '/')

    for raw in patterns:
        if not raw or not raw.strip():
            continue
        pattern = normalize_pattern(raw)
        if pattern in WILDCARD_TOKENS or pattern == '':
            return True

        if not has_wildcard(pattern):
            literal = pattern.rstrip('/')
            if path == literal or path.startswith(literal + '/'):
                return True
            if '/' not in literal and path.endswith('/' + literal):
                return True
            continue

        try:
            if glob_to_regex(pattern).fullmatch(path):
                return True
        except GlobError as e:
            logger.warning("Skipping pattern: %s", e)

    return False


class GlobExpander:
    """
    Expands glob and literal patterns into repo-relative file paths.

    Candidates come from the version control system's list of
    non-ignored files, so ignore rules are honored without re-implementing
    them. Files inside nested repositories and the metadata directory are
    never returned. The sidecar files are only left out when the ignore
    file lists them (see ensure_ignore_has_sidecar).
    """

    def __init__(self, vcs):
        """
        Initialize expander.

        Args:
            vcs: VersionControl implementation providing non-ignored files
        """
        self.vcs = vcs

    def candidates(self, root: Union[str, Path]) -> List[str]:
        """Non-ignored files under root eligible for expansion, sorted."""
        base = Path(root).resolve()
        nested = list_nested_repos(base)
        files = self.vcs.list_non_ignored_files(base)

        result = []
        for path in sorted(files):
            path = path.replace('\\', '/')
            if path == METADATA_DIR or path.startswith(METADATA_DIR + '/'):
                continue
            if under_any(path, nested):
                continue
            result.append(path)
        return result

    def expand(self, patterns: Iterable[str], root: Union[str, Path]) -> List[str]:
        """
        Expand patterns into files under root.

        Each pattern is one of:
        - '*' or '.': every candidate file
        - an existing directory (relative to root): every candidate under it
        - a bare file name: that name anywhere in the tree
        - any other glob, matched against whole relative paths

        A malformed glob contributes nothing; the remaining patterns are
        still expanded.

        Args:
            patterns: Patterns to expand
            root: Repository root

        Returns:
            Matched paths, each listed once, in first-match order
        """
        base = Path(root).resolve()
        patterns = [normalize_pattern(p) for p in patterns if p and p.strip()]
        if not patterns:
            return []

        candidates = self.candidates(base)
        out = {}

        for pattern in patterns:
            for path in self._match(pattern, base, candidates):
                out.setdefault(path, None)

        return list(out)

    def _match(self, pattern: str, base: Path, candidates: List[str]) -> List[str]:
        if pattern in WILDCARD_TOKENS:
            return candidates

        directory = self._as_directory(pattern, base)
        if directory is not None:
            if directory == '':
                return candidates
            prefix = directory + '/'
            return [path for path in candidates if path.startswith(prefix)]

        if not has_wildcard(pattern) and '/' not in pattern:
            return [path for path in candidates
                    if path == pattern or path.endswith('/' + pattern)]

        try:
            regex = glob_to_regex(pattern)
        except GlobError as e:
            logger.warning("Skipping pattern: %s", e)
            return []
        return [path for path in candidates if regex.fullmatch(path)]

    @staticmethod
    def _as_directory(pattern: str, base: Path) -> Optional[str]:
        """Root-relative form of pattern if it names a directory inside base."""
        target = Path(os.path.normpath(base / pattern))
        if not target.is_dir():
            return None
        try:
            relative = target.relative_to(base)
        except ValueError:
            return None
        relative_str = relative.as_posix()
        return '' if relative_str == '.' else relative_str


def expand_globs(patterns: Iterable[str], root: Union[str, Path], vcs) -> List[str]:
    """Expand patterns under root using vcs for the candidate list."""
    return GlobExpander(vcs).expand(patterns, root)


def resolve_globs(patterns: Iterable[str], root: Union[str, Path], vcs) -> List[str]:
    """
    Expand patterns and log a short report.

    Returns:
        Matched paths, or an empty list when nothing matched
    """
    patterns = list(patterns)
    resolved = expand_globs(patterns, root, vcs)
    if not resolved:
        logger.info("No files matched globs: %s", ', '.join(patterns))
    else:
        logger.info("Globs resolved to %d file(s)", len(resolved))
    return resolved
