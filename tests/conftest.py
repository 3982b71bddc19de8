"""Shared pytest fixtures for VGL tests."""

import pytest
import tempfile
import shutil
from pathlib import Path
from git import Repo
from vgl.core.repository import Repository
from vgl.core.vcs import ChangeEntry, ChangeType, RawStatus


class FakeVersionControl:
    """
    In-memory VersionControl for classifier and expander tests.

    Records every call in `calls`. Any method name listed in `failing`
    raises RuntimeError instead of answering.
    """

    def __init__(self, status=None, head=None, parent=None, historical=None,
                 working=None, files=None, failing=()):
        self.status = status if status is not None else RawStatus()
        self.head = head
        self.parent = parent
        self.historical = historical or {}
        self.working = working or {}
        self.files = set(files or ())
        self.failing = set(failing)
        self.calls = []

    def _call(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise RuntimeError(f"{name} failed")

    def resolve_reference(self, name):
        self._call('resolve_reference')
        return self.head if name == 'HEAD' else None

    def parent_of(self, snapshot_id):
        self._call('parent_of')
        return self.parent

    def diff_snapshots(self, old_id, new_id, detect_renames=True):
        self._call('diff_snapshots')
        return [ChangeEntry(src, dst, ChangeType.RENAME) for src, dst in self.historical.items()]

    def diff_snapshot_to_working_tree(self, snapshot_id, detect_renames=True):
        self._call('diff_snapshot_to_working_tree')
        return [ChangeEntry(src, dst, ChangeType.RENAME) for src, dst in self.working.items()]

    def raw_status(self):
        self._call('raw_status')
        return self.status

    def list_non_ignored_files(self, root):
        self._call('list_non_ignored_files')
        return set(self.files)


@pytest.fixture
def fake_vcs():
    """Factory for FakeVersionControl instances."""
    return FakeVersionControl


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir).resolve()
    shutil.rmtree(tmpdir, ignore_errors=True)


def init_git(path):
    """Initialize a git repository with a test identity."""
    git_repo = Repo.init(str(path))
    with git_repo.config_writer() as cw:
        cw.set_value('user', 'name', 'Test User')
        cw.set_value('user', 'email', 'test@example.com')
        cw.set_value('commit', 'gpgsign', 'false')
    return git_repo


def write_file(root, rel_path, content="content\n"):
    """Write a file below root, creating parent directories."""
    path = Path(root) / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def commit_all(git_repo, message="Test commit"):
    """Stage everything and commit; returns the new commit hash."""
    git_repo.git.add('--all')
    git_repo.git.commit('-m', message, '--allow-empty')
    return git_repo.head.commit.hexsha


@pytest.fixture
def git_repo(temp_dir):
    """Create an initialized git repository without commits."""
    return init_git(temp_dir)


@pytest.fixture
def repo(git_repo, temp_dir):
    """VGL Repository over an initialized git repository."""
    return Repository(str(temp_dir))


@pytest.fixture
def repo_with_commits(repo, git_repo):
    """Repository with a couple of commits."""
    write_file(repo.work_tree, "file1.txt", "Hello, World!\n")
    commit_all(git_repo, "First commit")

    write_file(repo.work_tree, "file2.txt", "Second file\n")
    commit_all(git_repo, "Second commit")

    return repo


@pytest.fixture
def helpers():
    """Access to module-level helpers without importing conftest."""
    class Helpers:
        init_git = staticmethod(init_git)
        write_file = staticmethod(write_file)
        commit_all = staticmethod(commit_all)
    return Helpers
