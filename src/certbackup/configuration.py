"""certbackup user-supplied configuration."""
import argparse
import logging
import os
from typing import Any
from typing import Optional

from certbackup import errors
from certbackup._internal import constants
from certbackup._internal.reconciler import LiveErrorPolicy

logger = logging.getLogger(__name__)


class NamespaceConfig:
    """Configuration wrapper around :class:`argparse.Namespace`.

    Attributes not defined here are delegated to the namespace.

    :ivar namespace: Namespace typically produced by
        :meth:`argparse.ArgumentParser.parse_args`.
    :type namespace: :class:`argparse.Namespace`

    """

    def __init__(self, namespace: argparse.Namespace) -> None:
        self.namespace: argparse.Namespace
        # Avoid recursion loop because of the delegation defined in __setattr__
        object.__setattr__(self, 'namespace', namespace)

        if self.namespace.backup_dir is not None:
            self.namespace.backup_dir = os.path.abspath(self.namespace.backup_dir)
        if self.namespace.logs_dir is not None:
            self.namespace.logs_dir = os.path.abspath(self.namespace.logs_dir)

        # Check command line parameters sanity, and error out in case of problem.
        _check_config_sanity(self)

    # Delegate any attribute not explicitly defined to the underlying namespace object.

    def __getattr__(self, name: str) -> Any:
        return getattr(self.namespace, name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self.namespace, name, value)

    @property
    def storage(self) -> str:
        """Storage backend, one of `constants.STORAGE_BACKENDS`."""
        return self.namespace.storage

    @property
    def s3_bucket(self) -> Optional[str]:
        """S3 bucket holding the backups."""
        return self.namespace.s3_bucket

    @property
    def s3_region(self) -> Optional[str]:
        """AWS region of the S3 bucket, or None for the boto3 default."""
        return self.namespace.s3_region

    @property
    def backup_dir(self) -> Optional[str]:
        """Directory holding the backups with the filesystem backend."""
        return self.namespace.backup_dir

    @property
    def logs_dir(self) -> Optional[str]:
        """Directory for the rotating log file, or None for no log file."""
        return self.namespace.logs_dir

    @property
    def live_error_policy(self) -> LiveErrorPolicy:
        """Handling of live secrets whose validity cannot be determined."""
        return LiveErrorPolicy(self.namespace.on_unverifiable_live)

    @property
    def logging_level(self) -> int:
        """Level of messages shown on the terminal."""
        if self.namespace.quiet:
            return constants.QUIET_LOGGING_LEVEL
        return max(constants.DEFAULT_LOGGING_LEVEL - self.namespace.verbose_count * 10,
                   logging.DEBUG)


def _check_config_sanity(config: NamespaceConfig) -> None:
    """Validate command line options and display error message if
    requirements are not met.

    :param config: NamespaceConfig instance holding user configuration
    :type args: :class:`certbackup.configuration.NamespaceConfig`

    """
    if config.storage not in constants.STORAGE_BACKENDS:
        raise errors.ConfigurationError(
            "Unknown storage backend {0}, expected one of {1}".format(
                config.storage, ", ".join(constants.STORAGE_BACKENDS)))
    if config.storage == "s3" and not config.s3_bucket:
        raise errors.ConfigurationError(
            "--s3-bucket (or S3_BUCKET) is required with --storage s3")
    if config.storage == "filesystem" and not config.backup_dir:
        raise errors.ConfigurationError(
            "--backup-dir (or CERTBACKUP_BACKUP_DIR) is required with --storage filesystem")
    if config.namespace.kubectl_timeout <= 0:
        raise errors.ConfigurationError("--kubectl-timeout must be positive")
