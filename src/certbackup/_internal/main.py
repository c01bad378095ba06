"""certbackup main entry point."""
import logging
import signal
import sys
import threading
from typing import Any
from typing import List
from typing import Optional
from typing import Union

import certbackup
from certbackup import configuration
from certbackup import interfaces
from certbackup._internal import cli
from certbackup._internal import constants
from certbackup._internal import log
from certbackup._internal.reconciler import Outcome
from certbackup._internal.reconciler import Reconciler
from certbackup._internal.secrets.kubectl import KubectlSecretStore
from certbackup._internal.storage.filesystem import FilesystemStorage
from certbackup._internal.storage.s3 import S3Storage

logger = logging.getLogger(__name__)

CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def make_storage(config: configuration.NamespaceConfig) -> interfaces.StorageBackend:
    """Storage backend selected by ``--storage``."""
    if config.storage == "filesystem":
        assert config.backup_dir is not None
        return FilesystemStorage(config.backup_dir)
    assert config.s3_bucket is not None
    return S3Storage(config.s3_bucket, region=config.s3_region)


def make_secret_store(config: configuration.NamespaceConfig) -> interfaces.SecretStore:
    """Secret store talking to the cluster described by the kubectl flags."""
    return KubectlSecretStore(kubectl=config.kubectl, kubeconfig=config.kubeconfig,
                              context=config.context, timeout=config.kubectl_timeout)


def reconcile(config: configuration.NamespaceConfig) -> int:
    """Reconcile every identity given on the command line, in order.

    SIGINT and SIGTERM cancel the work in progress. Identities not
    reached yet are reported as needing a retry.

    :param config: Configuration object
    :type config: configuration.NamespaceConfig

    :returns: exit status, see `constants.EXIT_OK`
    :rtype: int

    """
    reconciler = Reconciler(make_secret_store(config), make_storage(config),
                            live_error_policy=config.live_error_policy)
    cancel = threading.Event()

    def _cancel(signum: int, unused_frame: Any) -> None:
        logger.warning("Received signal %d, cancelling", signum)
        cancel.set()

    outcomes = []
    previous = {signum: signal.signal(signum, _cancel) for signum in CANCEL_SIGNALS}
    try:
        for identity in config.identities:
            result = reconciler.reconcile(identity, cancel)
            outcomes.append(result.outcome)
            print(f"{identity}: {result.outcome.value}")
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    if Outcome.FAILED in outcomes:
        return constants.EXIT_FAILED
    if Outcome.RETRY in outcomes:
        return constants.EXIT_RETRY
    return constants.EXIT_OK


def list_backups(config: configuration.NamespaceConfig) -> int:
    """Print the names of the stored backups.

    :param config: Configuration object
    :type config: configuration.NamespaceConfig

    :returns: exit status
    :rtype: int

    """
    for name in make_storage(config).list_names():
        print(name)
    return constants.EXIT_OK


VERBS = {
    "reconcile": reconcile,
    "list": list_backups,
}


def main(cli_args: Optional[List[str]] = None) -> Optional[Union[str, int]]:
    """Run certbackup.

    :param cli_args: command line to certbackup, defaults to ``sys.argv[1:]``
    :type cli_args: `list` of `str`

    :returns: value for `sys.exit` about the exit status of certbackup
    :rtype: `str` or `int` or `None`

    """
    if cli_args is None:
        cli_args = sys.argv[1:]

    log.pre_arg_parse_setup()

    logger.debug("certbackup version: %s", certbackup.__version__)
    logger.debug("Location of certbackup entry point: %s", sys.argv[0])
    logger.debug("Arguments: %r", cli_args)

    # note: arg parser internally handles --help (and exits afterwards)
    args = cli.prepare_and_parse_args(cli_args)
    config = configuration.NamespaceConfig(args)

    log.post_arg_parse_setup(config)

    return VERBS[config.verb](config)
