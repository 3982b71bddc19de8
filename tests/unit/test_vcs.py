"""Unit tests for version control output parsing."""

import pytest
from vgl.core.vcs import (ChangeEntry, ChangeType, RawStatus, VersionControl, GitTree,
                          parse_name_status, parse_porcelain_status)


class TestParseNameStatus:
    """Tests for 'git diff --name-status -z' parsing."""

    def test_rename(self):
        entries = parse_name_status("R100\0old.txt\0new.txt\0")
        assert entries == [ChangeEntry('old.txt', 'new.txt', ChangeType.RENAME)]

    def test_mixed(self):
        output = "M\0mod.txt\0A\0added.txt\0D\0gone.txt\0R087\0a/x.py\0b/x.py\0C100\0src.c\0copy.c\0"
        entries = parse_name_status(output)
        assert entries == [
            ChangeEntry('mod.txt', 'mod.txt', ChangeType.MODIFY),
            ChangeEntry(None, 'added.txt', ChangeType.ADD),
            ChangeEntry('gone.txt', None, ChangeType.DELETE),
            ChangeEntry('a/x.py', 'b/x.py', ChangeType.RENAME),
            ChangeEntry('src.c', 'copy.c', ChangeType.COPY),
        ]

    def test_path_property(self):
        assert ChangeEntry('gone.txt', None, ChangeType.DELETE).path == 'gone.txt'
        assert ChangeEntry('a', 'b', ChangeType.RENAME).path == 'b'

    def test_empty_output(self):
        assert parse_name_status('') == []

    def test_truncated_record_ignored(self):
        assert parse_name_status("R100\0only-one.txt") == []

    def test_unknown_letter_is_modify(self):
        assert ChangeType.from_letter('X') == ChangeType.MODIFY


class TestParsePorcelainStatus:
    """Tests for 'git status --porcelain=v1 -z' parsing."""

    def test_sets(self):
        output = "\0".join([
            " M worktree.txt",
            "M  staged.txt",
            "MM both.txt",
            "A  new.txt",
            "D  removed.txt",
            " D missing.txt",
            "AD added-then-deleted.txt",
            "?? untracked.txt",
            "!! build/",
            "UU conflict.txt",
        ]) + "\0"
        status = parse_porcelain_status(output)

        assert status.modified == {'worktree.txt', 'both.txt'}
        assert status.changed == {'staged.txt', 'both.txt'}
        assert status.added == {'new.txt', 'added-then-deleted.txt'}
        assert status.removed == {'removed.txt'}
        assert status.missing == {'missing.txt', 'added-then-deleted.txt'}
        assert status.untracked == {'untracked.txt'}
        assert status.ignored_not_in_index == {'build'}
        assert status.conflicting == {'conflict.txt'}

    def test_paths_with_spaces(self):
        status = parse_porcelain_status("?? my file.txt\0")
        assert status.untracked == {'my file.txt'}

    def test_empty(self):
        status = parse_porcelain_status('')
        assert status == RawStatus()


class TestRawStatusHasChanges:
    """has_changes() is true iff some change or untracked set is non-empty."""

    def test_clean(self):
        assert not RawStatus().has_changes()

    def test_only_ignored_is_clean(self):
        assert not RawStatus(ignored_not_in_index={'build'}).has_changes()

    @pytest.mark.parametrize('field_name', [
        'modified', 'changed', 'added', 'removed', 'missing', 'untracked',
    ])
    def test_each_set_counts(self, field_name):
        status = RawStatus(**{field_name: {'x.txt'}})
        assert status.has_changes()


def test_git_tree_satisfies_protocol(repo):
    assert isinstance(GitTree.open(repo.work_tree), VersionControl)


def test_fake_satisfies_protocol(fake_vcs):
    assert isinstance(fake_vcs(), VersionControl)
