"""Filesystem helpers for safe persistence."""

import errno
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

# Errors from os.replace() that mean the rename itself is not possible
# for this path pair, as opposed to the data being unwritable.
_NON_ATOMIC_ERRNOS = (errno.EXDEV, errno.EPERM, errno.EACCES, errno.EBUSY)


def atomic_write_text(path: Union[str, Path], data: str) -> None:
    """
    Write text to a file so that readers never see a partial write.

    The content goes to a temporary file in the target's directory which
    then replaces the target with os.replace(). When the filesystem refuses
    the replace (cross-device link, locked target on some platforms) the
    target is overwritten directly instead.

    Args:
        path: Destination file
        data: Text content to write (UTF-8)

    Raises:
        OSError: If neither the atomic replace nor the fallback succeeds
    """
    dest = Path(path)
    dest.parent.mkdir(parents=True, exist_ok=True)

    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            'w',
            dir=str(dest.parent),
            prefix=f'{dest.name}.',
            suffix='.tmp',
            delete=False,
            encoding='utf-8',
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())

        try:
            os.replace(tmp_name, dest)
            tmp_name = None
        except OSError as e:
            if e.errno not in _NON_ATOMIC_ERRNOS:
                raise
            logger.debug("Atomic replace of %s not supported (%s), overwriting", dest, e)
            dest.write_text(data, encoding='utf-8')
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass

