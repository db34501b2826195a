"""
Atomic output of the index container.

Data goes to a temp file next to the destination, is flushed to disk and
then moved into place with os.replace(), so the destination holds either
its previous content or the complete new content.
"""

import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from tfindex.core.errors import OutputWriteError

logger = logging.getLogger(__name__)


def _target_mode(path: Path) -> int:
    """Mode for the new file: the existing file's mode, else 0666 minus umask."""
    try:
        return path.stat().st_mode & 0o7777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_atomic(path: Path | str, data: bytes) -> Path:
    """
    Write ``data`` to ``path`` atomically.

    Args:
        path: Destination file
        data: Complete file content

    Returns:
        The destination path

    Raises:
        OutputWriteError: If any step fails; no temp file is left behind
    """
    path = Path(path)
    directory = path.parent

    try:
        directory.mkdir(parents=True, exist_ok=True)
        tmp = NamedTemporaryFile(
            mode="wb",
            dir=directory,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
    except OSError as e:
        raise OutputWriteError(f"Cannot create temp file for {path}: {e}") from e

    tmp_path = Path(tmp.name)
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        # NamedTemporaryFile creates 0600 files
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except OSError as e:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as cleanup_error:
            logger.warning(f"Could not remove temp file {tmp_path}: {cleanup_error}")
        raise OutputWriteError(f"Failed to write {path}: {e}") from e

    logger.debug(f"Wrote {len(data)} bytes to {path}")
    return path
