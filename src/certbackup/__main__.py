"""Runs certbackup."""
import logging
import sys

import certbackup.main


logger = logging.getLogger(__name__)


def main():
    """Runs certbackup, logs any returned status, and calls sys.exit."""
    status = certbackup.main.main()
    if status:
        logger.debug('Exiting with status %s', status)
    sys.exit(status)


if __name__ == '__main__':
    main()
