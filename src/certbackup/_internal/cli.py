"""certbackup command line argument & config processing."""
import argparse
import logging
from typing import Any
from typing import List

import configargparse

import certbackup
from certbackup import errors
from certbackup._internal import constants
from certbackup._internal.reconciler import LiveErrorPolicy
from certbackup.secret import Identity

logger = logging.getLogger(__name__)

USAGE = """
  certbackup [options] reconcile NAMESPACE/NAME...
  certbackup [options] list
"""

VERBS = ("reconcile", "list")

DESCRIPTION = """\
Back up TLS secrets while they are valid, and restore them from the backup
when they disappear or stop being valid.

Every option can also be set in a config file (see -c) or, where noted, in
an environment variable.
"""


def flag_default(name: str) -> Any:
    """Default value for CLI flag."""
    return constants.CLI_DEFAULTS[name]


def identity(value: str) -> Identity:
    """argparse type for NAMESPACE/NAME arguments."""
    try:
        return Identity.parse(value)
    except errors.ConfigurationError as error:
        raise argparse.ArgumentTypeError(str(error))


def prepare_and_parse_args(args: List[str]) -> argparse.Namespace:
    """Returns parsed command line arguments.

    :param list args: command line, without the program name

    :returns: parsed command line arguments
    :rtype: argparse.Namespace

    """
    parser = configargparse.ArgParser(
        prog="certbackup",
        usage=USAGE,
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        args_for_setting_config_path=["-c", "--config"],
        default_config_files=flag_default("config_files"),
        config_arg_help_message="path to config file (default: {0})".format(
            " and ".join(flag_default("config_files"))))

    parser.add_argument(
        "--version", action="version",
        version="%(prog)s {0}".format(certbackup.__version__))
    _add_logging_arguments(parser)
    _add_storage_arguments(parser)
    _add_cluster_arguments(parser)
    parser.add_argument(
        "--on-unverifiable-live", dest="on_unverifiable_live",
        choices=[policy.value for policy in LiveErrorPolicy],
        default=flag_default("on_unverifiable_live"),
        env_var="CERTBACKUP_ON_UNVERIFIABLE_LIVE",
        help="What to do when the live secret cannot be parsed, e.g. because "
             "its key is not RSA: 'restore' treats it as invalid and restores "
             "the backup, 'halt' fails without touching the backup. "
             "(default: %(default)s)")

    parser.add_argument(
        "verb", choices=VERBS, metavar="COMMAND",
        help="reconcile: back up or restore the given secrets once; "
             "list: list the stored backups")
    parser.add_argument(
        "identities", nargs="*", type=identity, metavar="NAMESPACE/NAME",
        help="secrets to reconcile")

    namespace = parser.parse_args(args)
    if namespace.verb == "reconcile" and not namespace.identities:
        parser.error("reconcile requires at least one NAMESPACE/NAME")
    if namespace.verb != "reconcile" and namespace.identities:
        parser.error(f"{namespace.verb} does not take NAMESPACE/NAME arguments")
    logger.debug("Parsed arguments: verb=%s storage=%s",
                 namespace.verb, namespace.storage)
    return namespace


def _add_logging_arguments(parser: configargparse.ArgParser) -> None:
    parser.add_argument(
        "-v", "--verbose", dest="verbose_count", action="count",
        default=flag_default("verbose_count"),
        help="This flag can be used multiple times to incrementally increase "
             "the verbosity of output, e.g. -vvv.")
    parser.add_argument(
        "-q", "--quiet", dest="quiet", action="store_true",
        default=flag_default("quiet"),
        help="Silence all output except errors.")
    parser.add_argument(
        "--debug", action="store_true", default=flag_default("debug"),
        help="Show tracebacks in case of errors.")
    parser.add_argument(
        "--logs-dir", default=flag_default("logs_dir"),
        env_var="CERTBACKUP_LOGS_DIR",
        help="Also write a debug log to certbackup.log in this directory.")
    parser.add_argument(
        "--max-log-backups", type=int, default=flag_default("max_log_backups"),
        help="Maximum number of rotated log files to keep. (default: %(default)s)")


def _add_storage_arguments(parser: configargparse.ArgParser) -> None:
    group = parser.add_argument_group("storage")
    group.add_argument(
        "--storage", choices=constants.STORAGE_BACKENDS,
        default=flag_default("storage"), env_var="CERTBACKUP_STORAGE",
        help="Where backups are kept. (default: %(default)s)")
    group.add_argument(
        "--s3-region", default=flag_default("s3_region"), env_var="S3_REGION",
        help="AWS S3 region")
    group.add_argument(
        "--s3-bucket", default=flag_default("s3_bucket"), env_var="S3_BUCKET",
        help="AWS S3 bucket")
    group.add_argument(
        "--backup-dir", default=flag_default("backup_dir"),
        env_var="CERTBACKUP_BACKUP_DIR",
        help="Directory holding the backups with --storage filesystem.")


def _add_cluster_arguments(parser: configargparse.ArgParser) -> None:
    group = parser.add_argument_group("cluster")
    group.add_argument(
        "--kubectl", default=flag_default("kubectl"),
        help="kubectl executable. (default: %(default)s)")
    group.add_argument(
        "--kubeconfig", default=flag_default("kubeconfig"),
        help="kubeconfig file passed to kubectl. (default: kubectl's own)")
    group.add_argument(
        "--context", default=flag_default("context"),
        help="kubeconfig context passed to kubectl.")
    group.add_argument(
        "--kubectl-timeout", type=int, default=flag_default("kubectl_timeout"),
        help="Seconds to wait for each kubectl command. (default: %(default)s)")
