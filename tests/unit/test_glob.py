"""Unit tests for glob compilation and expansion."""

import logging

import pytest
from vgl.utils.glob import (GlobError, GlobExpander, glob_to_regex, has_wildcard,
                            matches_any, normalize_pattern, resolve_globs)


class TestGlobToRegex:
    """Tests for glob compilation."""

    @pytest.mark.parametrize('pattern,path,expected', [
        ('*.txt', 'a.txt', True),
        ('*.txt', 'dir/a.txt', False),
        ('**/*.txt', 'a.txt', True),
        ('**/*.txt', 'dir/sub/a.txt', True),
        ('src/**', 'src/a/b.py', True),
        ('file?.py', 'file1.py', True),
        ('file?.py', 'file10.py', False),
        ('file[0-9].py', 'file5.py', True),
        ('file[!0-9].py', 'file5.py', False),
        ('file[!0-9].py', 'fileX.py', True),
        ('a.b', 'axb', False),
    ])
    def test_matching(self, pattern, path, expected):
        assert bool(glob_to_regex(pattern).fullmatch(path)) is expected

    def test_unterminated_class(self):
        with pytest.raises(GlobError):
            glob_to_regex('file[abc')

    def test_reversed_range(self):
        with pytest.raises(GlobError):
            glob_to_regex('[z-a]')

    def test_glob_error_is_value_error(self):
        assert issubclass(GlobError, ValueError)


class TestPatternHelpers:

    def test_has_wildcard(self):
        assert has_wildcard('*.py')
        assert has_wildcard('a?')
        assert has_wildcard('[ab]')
        assert not has_wildcard('src/main.py')

    def test_normalize(self):
        assert normalize_pattern('  ./src\\main.py ') == 'src/main.py'
        assert normalize_pattern('././a') == 'a'


class TestMatchesAny:

    def test_wildcard_tokens(self):
        assert matches_any('any/path.txt', ['*'])
        assert matches_any('any/path.txt', ['.'])

    def test_empty_path(self):
        assert not matches_any('', ['*'])

    def test_literal_directory(self):
        assert matches_any('docs/readme.md', ['docs'])
        assert matches_any('docs/readme.md', ['docs/'])
        assert not matches_any('docsextra/readme.md', ['docs'])

    def test_bare_name_matches_basename(self):
        assert matches_any('src/util/helpers.py', ['helpers.py'])
        assert not matches_any('src/util/helpers.py', ['util/other.py'])

    def test_glob(self):
        assert matches_any('a.py', ['*.md', '*.py'])
        assert not matches_any('a.rs', ['*.md', '*.py'])

    def test_blank_patterns_ignored(self):
        assert not matches_any('a.py', ['', '   '])

    def test_malformed_never_matches(self):
        assert not matches_any('z.txt', ['[z-a]'])
        assert matches_any('z.txt', ['[z-a]', '*.txt'])


@pytest.fixture
def tree(tmp_path):
    """Work tree with a nested repository under docs/."""
    for rel in ['README.md', 'main.py', 'docs/guide.md', 'docs/api/index.md',
                'docs/nested/inner.md', 'src/app.py', 'src/util/helpers.py', 'dir[1]/x.txt']:
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text('x\n')
    (tmp_path / 'docs' / 'nested' / '.git').mkdir()
    return tmp_path.resolve()


@pytest.fixture
def files():
    return {
        'README.md', 'main.py', 'docs/guide.md', 'docs/api/index.md',
        'docs/nested/inner.md', 'src/app.py', 'src/util/helpers.py',
        'dir[1]/x.txt', '.vgl', '.vgl-undecided', '.git/config',
    }


class TestGlobExpander:
    """Tests for GlobExpander against an in-memory file list."""

    def test_directory_excludes_nested_repo(self, tree, files, fake_vcs):
        expander = GlobExpander(fake_vcs(files=files))
        assert expander.expand(['docs'], tree) == ['docs/api/index.md', 'docs/guide.md']

    def test_star_is_non_ignored_minus_metadata_and_nested(self, tree, files, fake_vcs):
        """'*' returns every non-ignored file except metadata and nested repos."""
        expander = GlobExpander(fake_vcs(files=files))
        result = expander.expand(['*'], tree)

        assert result == sorted(files - {'.git/config', 'docs/nested/inner.md'})

    def test_dot_is_everything(self, tree, files, fake_vcs):
        expander = GlobExpander(fake_vcs(files=files))
        assert expander.expand(['.'], tree) == expander.expand(['*'], tree)

    def test_bare_name(self, tree, files, fake_vcs):
        expander = GlobExpander(fake_vcs(files=files))
        assert expander.expand(['helpers.py'], tree) == ['src/util/helpers.py']

    def test_glob_is_whole_path(self, tree, files, fake_vcs):
        expander = GlobExpander(fake_vcs(files=files))
        assert expander.expand(['*.py'], tree) == ['main.py']
        assert expander.expand(['**/*.py'], tree) == ['main.py', 'src/app.py', 'src/util/helpers.py']

    def test_no_duplicates_and_first_match_order(self, tree, files, fake_vcs):
        expander = GlobExpander(fake_vcs(files=files))
        result = expander.expand(['src/app.py', '**/*.py', 'src'], tree)
        assert result == ['src/app.py', 'main.py', 'src/util/helpers.py']

    def test_malformed_pattern_skipped(self, tree, files, fake_vcs, caplog):
        expander = GlobExpander(fake_vcs(files=files))
        with caplog.at_level(logging.WARNING, logger='vgl.utils.glob'):
            result = expander.expand(['[z-a]', 'README.md'], tree)
        assert result == ['README.md']
        assert 'Skipping pattern' in caplog.text

    def test_directory_name_with_metachars(self, tree, files, fake_vcs):
        """An existing directory wins over glob interpretation of its name."""
        expander = GlobExpander(fake_vcs(files=files))
        assert expander.expand(['dir[1]'], tree) == ['dir[1]/x.txt']

    def test_empty_patterns(self, tree, fake_vcs):
        vcs = fake_vcs(files={'a.txt'})
        assert GlobExpander(vcs).expand(['', '  '], tree) == []
        assert 'list_non_ignored_files' not in vcs.calls

    def test_no_match(self, tree, files, fake_vcs):
        assert resolve_globs(['*.rs'], tree, fake_vcs(files=files)) == []
