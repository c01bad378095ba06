"""Storage backend keeping backups as files in a local directory."""
import logging
import os
import tempfile
from typing import List

from certbackup import errors
from certbackup import interfaces

logger = logging.getLogger(__name__)

DIR_MODE = 0o700
FILE_MODE = 0o600


class FilesystemStorage(interfaces.StorageBackend):
    """One file per backup object.

    Writes go to a temporary file in the same directory which then
    replaces the target, so readers never observe a partial backup.

    :ivar str directory: directory holding the backups

    """

    def __init__(self, directory: str) -> None:
        self.directory = os.path.abspath(directory)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.directory!r})'

    def _path(self, name: str) -> str:
        if (not name or name in (os.curdir, os.pardir) or os.sep in name
                or (os.altsep and os.altsep in name)):
            raise errors.StorageError(f'Invalid backup name {name!r}')
        return os.path.join(self.directory, name)

    def upload(self, name: str, content: bytes) -> None:
        path = self._path(name)
        try:
            os.makedirs(self.directory, mode=DIR_MODE, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.directory, prefix=f'.{name}.')
        except OSError as error:
            raise errors.StorageError(f'Unable to write {path}: {error}')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_path, FILE_MODE)
            os.replace(temp_path, path)
        except OSError as error:
            try:
                os.remove(temp_path)
            except OSError:
                logger.debug('Unable to remove %s', temp_path, exc_info=True)
            raise errors.StorageError(f'Unable to write {path}: {error}')
        logger.debug('Wrote %d bytes to %s', len(content), path)

    def download(self, name: str) -> bytes:
        path = self._path(name)
        try:
            with open(path, 'rb') as f:
                return f.read()
        except FileNotFoundError:
            raise errors.BackupNotFound(f'{path} does not exist')
        except OSError as error:
            raise errors.StorageError(f'Unable to read {path}: {error}')

    def list_names(self) -> List[str]:
        try:
            entries = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        except OSError as error:
            raise errors.StorageError(f'Unable to list {self.directory}: {error}')
        return sorted(entry for entry in entries if not entry.startswith('.')
                      and os.path.isfile(os.path.join(self.directory, entry)))
