"""Backup and restore of one TLS secret.

`Reconciler.reconcile` brings a live secret and its backup into agreement:

* a valid live secret is uploaded, replacing the previous backup;
* a missing or invalid live secret is recreated from a valid backup;
* if there is nothing to restore, nothing happens.

Every call performs at most one of those actions and may be repeated any
number of times. Retry scheduling belongs to the caller, which is told
through `Result.requeue` whether another attempt may help.

"""
import enum
import logging
from typing import NamedTuple
from typing import Optional
from typing import Protocol

from certbackup import crypto_util
from certbackup import errors
from certbackup import interfaces
from certbackup import secret as secret_lib
from certbackup.secret import Identity

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    """What a reconciliation did."""
    NOOP = 'noop'
    BACKED_UP = 'backed-up'
    RESTORED = 'restored'
    RETRY = 'retry'
    FAILED = 'failed'


class Result(NamedTuple):
    """Outcome of one reconciliation, and the error behind RETRY or FAILED."""
    outcome: Outcome
    error: Optional[errors.Error] = None

    @property
    def requeue(self) -> bool:
        """Should the caller try again later?"""
        return self.outcome is Outcome.RETRY


class LiveErrorPolicy(enum.Enum):
    """What to do when the live secret cannot be judged at all."""
    RESTORE = 'restore'
    """Treat it like an invalid secret and attempt a restore."""
    HALT = 'halt'
    """Fail without looking at the backup."""


class CancelToken(Protocol):
    """Anything with an ``is_set`` method, such as `threading.Event`."""

    def is_set(self) -> bool:  # pragma: no cover
        ...


class Reconciler:
    """Keeps secrets backed up and restores them when needed.

    The reconciler holds no per-identity state and does no locking.
    Calls for different identities may run concurrently; calls for the
    same identity must be serialized by the caller.

    :ivar .SecretStore secrets: system owning the live secrets
    :ivar .StorageBackend storage: where backups are kept
    :ivar clock: current time source used for validation
    :ivar LiveErrorPolicy live_error_policy: handling of live secrets
        whose validity cannot be determined

    """

    def __init__(self, secrets: interfaces.SecretStore,
                 storage: interfaces.StorageBackend,
                 clock: Optional[crypto_util.Clock] = None,
                 live_error_policy: LiveErrorPolicy = LiveErrorPolicy.RESTORE) -> None:
        self.secrets = secrets
        self.storage = storage
        self.clock = clock or crypto_util.utcnow
        self.live_error_policy = live_error_policy

    def reconcile(self, identity: Identity,
                  cancel: Optional[CancelToken] = None) -> Result:
        """Back up or restore the secret `identity`.

        :param Identity identity: secret to reconcile
        :param cancel: checked before every call to the secret store or
            storage backend; once set the result is a retry

        :returns: what was done
        :rtype: `Result`

        """
        try:
            return self._reconcile(identity, cancel)
        except errors.Cancelled as error:
            logger.info('Reconciliation of %s cancelled', identity)
            return Result(Outcome.RETRY, error)

    def _reconcile(self, identity: Identity, cancel: Optional[CancelToken]) -> Result:
        key = secret_lib.backup_key(identity)

        _check_cancel(cancel)
        try:
            live = self.secrets.get(identity)
        except errors.ClusterError as error:
            return _retry(f'Unable to get secret {identity}', error)

        if live is None:
            logger.info('Secret %s does not exist', identity)
        else:
            try:
                valid = self._live_is_valid(identity, live)
            except errors.ParseError as error:
                return _fail(f'Unable to verify secret {identity}', error)
            if valid:
                return self._backup(identity, key, live, cancel)

        return self._restore(identity, key, cancel, live_exists=live is not None)

    def _live_is_valid(self, identity: Identity, live: secret_lib.Secret) -> bool:
        """Judge the live secret.

        :raises errors.ParseError: if it cannot be judged and the policy
            is `LiveErrorPolicy.HALT`

        """
        try:
            outcome = crypto_util.verify_secret(live, self.clock)
        except errors.ParseError as error:
            if self.live_error_policy is LiveErrorPolicy.HALT:
                raise
            logger.error('Unable to verify secret %s, treating it as invalid: %s',
                         identity, error)
            return False
        if not outcome.valid:
            logger.warning('Secret %s is not valid: %s', identity, outcome.cause)
        return outcome.valid

    def _backup(self, identity: Identity, key: str, live: secret_lib.Secret,
                cancel: Optional[CancelToken]) -> Result:
        try:
            content = secret_lib.dumps(live)
        except errors.Error as error:
            return _retry(f'Unable to serialize secret {identity}', error)

        _check_cancel(cancel)
        try:
            self.storage.upload(key, content)
        except errors.StorageError as error:
            return _retry(f'Error uploading secret {identity} to storage', error)

        chain = live.data[secret_lib.TLS_CERT_KEY]
        logger.info('Backed up secret %s to %s (%s, valid from %s to %s)',
                    identity, key, ', '.join(crypto_util.get_names_from_chain(chain)),
                    crypto_util.notBefore(chain), crypto_util.notAfter(chain))
        return Result(Outcome.BACKED_UP)

    def _restore(self, identity: Identity, key: str, cancel: Optional[CancelToken],
                 live_exists: bool) -> Result:
        _check_cancel(cancel)
        try:
            content = self.storage.download(key)
        except errors.BackupNotFound:
            logger.info('No backup of secret %s, nothing to restore', identity)
            return Result(Outcome.NOOP)
        except errors.StorageError as error:
            return _retry(f'Error downloading secret {identity} from storage', error)

        try:
            backup = self._load_backup(identity, content)
        except errors.CorruptBackup as error:
            return _fail(f'Backup {key} of secret {identity} is corrupt', error)

        try:
            outcome = crypto_util.verify_secret(backup, self.clock)
        except errors.ParseError as error:
            return _fail(f'Backup {key} of secret {identity} is corrupt',
                         errors.CorruptBackup(str(error)))
        if not outcome.valid:
            return _fail(f'Backup {key} of secret {identity} is not valid',
                         errors.NoValidCredential(
                             f'no valid copy of secret {identity}: {outcome.cause}'))

        _check_cancel(cancel)
        try:
            self.secrets.create(secret_lib.strip_bookkeeping(backup))
        except errors.AlreadyExists:
            if live_exists:
                logger.warning('Secret %s exists but is not valid; delete it to restore '
                               'it from %s', identity, key)
            else:
                logger.info('Secret %s was recreated by someone else', identity)
            return Result(Outcome.NOOP)
        except errors.ClusterError as error:
            return _retry(f'Error restoring secret {identity}', error)

        logger.info('Restored secret %s from %s', identity, key)
        return Result(Outcome.RESTORED)

    @staticmethod
    def _load_backup(identity: Identity, content: bytes) -> secret_lib.Secret:
        try:
            backup = secret_lib.loads(content)
        except errors.ParseError as error:
            raise errors.CorruptBackup(str(error))
        if backup.identity != identity:
            raise errors.CorruptBackup(f'it holds secret {backup.identity}')
        return backup


def _check_cancel(cancel: Optional[CancelToken]) -> None:
    if cancel is not None and cancel.is_set():
        raise errors.Cancelled('reconciliation was cancelled')


def _retry(msg: str, error: errors.Error) -> Result:
    logger.warning('%s: %s', msg, error)
    logger.debug('', exc_info=True)
    return Result(Outcome.RETRY, error)


def _fail(msg: str, error: errors.Error) -> Result:
    logger.error('%s: %s', msg, error)
    return Result(Outcome.FAILED, error)
