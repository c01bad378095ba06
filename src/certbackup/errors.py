"""certbackup errors.

Errors fall into three groups. Parse errors mean a credential could not be
read at all. Storage, cluster and cancellation errors are transient and safe
to retry. `NoValidCredential` and `CorruptBackup` are terminal: retrying
changes nothing until an operator intervenes.

"""


class Error(Exception):
    """Generic certbackup error."""


class ConfigurationError(Error):
    """Configuration sanity error."""


# Parse errors

class ParseError(Error):
    """A key, certificate or stored object could not be decoded."""


class UnsupportedKeyType(ParseError):
    """The private key decoded but is not an RSA key."""


class CorruptBackup(ParseError):
    """The backed up object cannot be used for a restore."""


# Transient errors

class StorageError(Error):
    """Generic `.StorageBackend` error."""


class BackupNotFound(StorageError):
    """No backup object exists under the requested name."""


class ClusterError(Error):
    """Generic `.SecretStore` error."""


class AlreadyExists(ClusterError):
    """The secret being created already exists."""


class Cancelled(Error):
    """The caller cancelled the operation."""


# Terminal errors

class NoValidCredential(Error):
    """Neither the live secret nor its backup is valid."""


def is_retryable(error: BaseException) -> bool:
    """Is `error` a condition that may clear up on a later attempt?

    :param BaseException error: error to classify

    :returns: True for transient storage, cluster and cancellation errors
    :rtype: bool

    """
    if isinstance(error, (BackupNotFound, AlreadyExists)):
        return False
    return isinstance(error, (StorageError, ClusterError, Cancelled))
