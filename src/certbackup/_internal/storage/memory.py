"""In-memory storage backend."""
import threading
from typing import Dict
from typing import List

from certbackup import errors
from certbackup import interfaces


class MemoryStorage(interfaces.StorageBackend):
    """Backups held in a dictionary, for tests and dry runs."""

    def __init__(self) -> None:
        self._objects: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def upload(self, name: str, content: bytes) -> None:
        with self._lock:
            self._objects[name] = bytes(content)

    def download(self, name: str) -> bytes:
        with self._lock:
            try:
                return self._objects[name]
            except KeyError:
                raise errors.BackupNotFound(f'{name} does not exist')

    def list_names(self) -> List[str]:
        with self._lock:
            return sorted(self._objects)
