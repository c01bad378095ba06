"""certbackup interfaces."""
from abc import ABCMeta
from abc import abstractmethod
from typing import List
from typing import Optional

from certbackup.secret import Identity
from certbackup.secret import Secret


class StorageBackend(metaclass=ABCMeta):
    """Durable key/value object store holding backups.

    Implementations must tolerate concurrent use for distinct names.

    """

    @abstractmethod
    def upload(self, name: str, content: bytes) -> None:  # pragma: no cover
        """Store `content` under `name`, replacing any previous object.

        Returning means the write is durable.

        :raises .StorageError: if the object could not be stored

        """
        raise NotImplementedError()

    @abstractmethod
    def download(self, name: str) -> bytes:  # pragma: no cover
        """Fetch the object stored under `name`.

        :raises .BackupNotFound: if there is no such object
        :raises .StorageError: if the object could not be fetched

        :returns: object content
        :rtype: bytes

        """
        raise NotImplementedError()

    @abstractmethod
    def list_names(self) -> List[str]:  # pragma: no cover
        """Names of all stored objects, sorted.

        :raises .StorageError: if the listing failed

        """
        raise NotImplementedError()


class SecretStore(metaclass=ABCMeta):
    """The system owning the live secrets, usually a Kubernetes cluster."""

    @abstractmethod
    def get(self, identity: Identity) -> Optional[Secret]:  # pragma: no cover
        """Fetch the live secret.

        :raises .ClusterError: if it could not be determined whether the
            secret exists

        :returns: the secret, or None if it does not exist
        :rtype: `.Secret` or None

        """
        raise NotImplementedError()

    @abstractmethod
    def create(self, secret: Secret) -> None:  # pragma: no cover
        """Create `secret`.

        :raises .AlreadyExists: if a secret with the same identity exists
        :raises .ClusterError: if the secret could not be created

        """
        raise NotImplementedError()
