"""Exception types raised by VGL."""


class VglError(Exception):
    """Base class for all VGL errors."""


class RepositoryNotFoundError(VglError):
    """Raised when a path is not inside a repository working tree."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Not a repository: {path}")


class SidecarWriteError(VglError):
    """Raised when a sidecar file cannot be written."""

    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Failed to write {path}: {reason}")
