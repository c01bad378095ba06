"""In-memory secret store."""
import threading
from typing import Dict
from typing import Optional

from certbackup import errors
from certbackup import interfaces
from certbackup.secret import Identity
from certbackup.secret import Secret


class MemorySecretStore(interfaces.SecretStore):
    """Secrets held in a dictionary, for tests and dry runs.

    Like a cluster, the store assigns a resource version on creation and
    refuses to create a secret that already exists.

    """

    def __init__(self) -> None:
        self._secrets: Dict[Identity, Secret] = {}
        self._lock = threading.Lock()
        self._version = 0

    def get(self, identity: Identity) -> Optional[Secret]:
        with self._lock:
            return self._secrets.get(identity)

    def create(self, secret: Secret) -> None:
        with self._lock:
            if secret.identity in self._secrets:
                raise errors.AlreadyExists(f'Secret {secret.identity} already exists')
            self._version += 1
            metadata = secret.metadata.update(resource_version=str(self._version))
            self._secrets[secret.identity] = secret.update(metadata=metadata)

    def delete(self, identity: Identity) -> None:
        """Remove a secret, if it exists."""
        with self._lock:
            self._secrets.pop(identity, None)
