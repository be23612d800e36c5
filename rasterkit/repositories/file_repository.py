from pathlib import Path
from typing import Union
import logging
import os
import stat
import tempfile

from ..errors import IoFailure

logger = logging.getLogger(__name__)


def _target_mode(path: Path) -> int:
    """Mode of the existing file at path, else 0666 masked by the umask."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except OSError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


class FileRepository:
    """
    Handles file I/O for encoded images. No pixel logic here.
    """

    @staticmethod
    def read_file(path: Union[str, Path]) -> bytes:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as err:
            raise IoFailure(f'Image file cannot be read "{path}"') from err

        logger.info(f"Loaded {len(data)} bytes from {path}")
        return data

    @staticmethod
    def ensure_dir(path: Union[str, Path], mode: int = 0o777) -> None:
        path = Path(path)
        if path.is_dir():
            return
        try:
            path.mkdir(mode=mode, parents=True, exist_ok=True)
        except OSError as err:
            raise IoFailure(f'Unable to create the directory "{path}"') from err

    @staticmethod
    def write_file_exclusive(path: Union[str, Path], data: bytes) -> None:
        """
        Write to a temporary sibling file, then swap it in with os.replace().
        Readers never see a half-written image.
        """
        path = Path(path)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        except OSError as err:
            raise IoFailure(f'Unable to save image to "{path}"') from err

        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            # mkstemp creates 0600 files; use the usual umask-derived mode instead
            os.chmod(tmp_name, _target_mode(path))
            os.replace(tmp_name, path)
        except OSError as err:
            Path(tmp_name).unlink(missing_ok=True)
            raise IoFailure(f'Unable to save image to "{path}"') from err

        logger.info(f"Saved {len(data)} bytes to {path}")
