"""certbackup constants."""
import logging
import os
from typing import Any
from typing import Dict

CLI_DEFAULTS: Dict[str, Any] = dict(  # noqa
    config_files=[
        "/etc/certbackup/cli.ini",
        # https://freedesktop.org/wiki/Software/xdg-user-dirs/
        os.path.join(os.environ.get("XDG_CONFIG_HOME", "~/.config"),
                     "certbackup", "cli.ini"),
    ],

    # Main parser
    verbose_count=0,
    quiet=False,
    debug=False,
    logs_dir=None,
    max_log_backups=10,

    # Storage
    storage="s3",
    s3_region=None,
    s3_bucket=None,
    backup_dir=None,

    # Cluster
    kubectl="kubectl",
    kubeconfig=None,
    context=None,
    kubectl_timeout=30,

    on_unverifiable_live="restore",
)
"""Defaults for CLI flags and `certbackup.configuration.NamespaceConfig` attributes."""

STORAGE_BACKENDS = ("s3", "filesystem")
"""Values accepted by ``--storage``."""

QUIET_LOGGING_LEVEL = logging.ERROR
"""Logging level to use in quiet mode."""

DEFAULT_LOGGING_LEVEL = logging.WARNING
"""Default logging level to use when not in quiet mode."""

LOG_FILE = "certbackup.log"
"""Name of the log file inside ``--logs-dir``."""

EXIT_OK = 0
"""Every identity was reconciled."""

EXIT_FAILED = 1
"""At least one identity needs operator attention."""

EXIT_RETRY = 75
"""At least one identity should be retried later (EX_TEMPFAIL)."""
