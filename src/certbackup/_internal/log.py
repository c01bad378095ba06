"""Logging utilities for certbackup.

The best way to use this module is through `pre_arg_parse_setup` and
`post_arg_parse_setup`. `pre_arg_parse_setup` configures a minimal
terminal logger before the command line is parsed so that errors are
reported even if parsing fails. `post_arg_parse_setup` relies on the parsed
command line arguments to set the terminal verbosity requested by the user
and, if ``--logs-dir`` was given, to add a rotating debug log file.

The default verbosity is WARNING, so the outcome of each reconciliation is
only shown with -v.

"""
import functools
import logging
import logging.handlers
import os
import sys
import traceback
from types import TracebackType
from typing import IO
from typing import Optional
from typing import Tuple
from typing import Type

from certbackup import configuration
from certbackup import errors
from certbackup._internal import constants

# Logging format
CLI_FMT = "%(message)s"
FILE_FMT = "%(asctime)s:%(levelname)s:%(name)s:%(message)s"

ANSI_SGR_RED = "\033[31m"
ANSI_SGR_RESET = "\033[0m"

logger = logging.getLogger(__name__)


def pre_arg_parse_setup() -> None:
    """Setup logging before command line arguments are parsed.

    Terminal logging is setup using
    `certbackup._internal.constants.QUIET_LOGGING_LEVEL` so certbackup is
    as quiet as possible. `sys.excepthook` is set to properly log/display
    fatal exceptions.

    """
    stream_handler = ColoredStreamHandler()
    stream_handler.setFormatter(logging.Formatter(CLI_FMT))
    stream_handler.setLevel(constants.QUIET_LOGGING_LEVEL)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # send all records to handlers
    root_logger.addHandler(stream_handler)

    sys.excepthook = functools.partial(
        except_hook, debug='--debug' in sys.argv)


def post_arg_parse_setup(config: configuration.NamespaceConfig) -> None:
    """Setup logging after command line arguments are parsed.

    This function assumes `pre_arg_parse_setup` was called earlier and
    the root logging configuration has not been modified.

    :param certbackup.configuration.NamespaceConfig config: Configuration object

    """
    root_logger = logging.getLogger()
    stderr_handler = None
    for handler in root_logger.handlers:
        if isinstance(handler, ColoredStreamHandler):
            stderr_handler = handler
    msg = 'Previously configured logging handlers have been removed!'
    assert stderr_handler is not None, msg

    if config.logs_dir is not None:
        file_handler, file_path = setup_log_file_handler(
            config, constants.LOG_FILE, FILE_FMT)
        root_logger.addHandler(file_handler)
        logger.debug('Saving debug log to %s', file_path)

    level = config.logging_level
    stderr_handler.setLevel(level)
    logger.debug('Root logging level set at %d', level)

    sys.excepthook = functools.partial(except_hook, debug=config.debug)


def setup_log_file_handler(config: configuration.NamespaceConfig, logfile: str,
                           fmt: str) -> Tuple[logging.Handler, str]:
    """Setup file debug logging.

    :param certbackup.configuration.NamespaceConfig config: Configuration object
    :param str logfile: basename for the log file
    :param str fmt: logging format string

    :returns: file handler and absolute path to the log file
    :rtype: tuple

    """
    assert config.logs_dir is not None
    log_file_path = os.path.join(config.logs_dir, logfile)
    try:
        os.makedirs(config.logs_dir, mode=0o700, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=2 ** 20,
            backupCount=config.max_log_backups)
    except OSError as error:
        raise errors.Error(f'Unable to open log file {log_file_path}: {error}')
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=fmt))
    return handler, log_file_path


class ColoredStreamHandler(logging.StreamHandler):
    """Stream handler that prints warnings and errors in red on a terminal.

    :ivar bool colored: whether the stream is a terminal

    """
    def __init__(self, stream: Optional[IO] = None) -> None:
        super().__init__(stream)
        self.colored = (sys.stderr if stream is None else stream).isatty()

    def format(self, record: logging.LogRecord) -> str:
        out = super().format(record)
        if self.colored and record.levelno >= logging.WARNING:
            return f'{ANSI_SGR_RED}{out}{ANSI_SGR_RESET}'
        return out


def except_hook(exc_type: Type[BaseException], exc_value: BaseException,
                trace: TracebackType, debug: bool) -> None:
    """Report the exception that ended the run, then exit with EXIT_FAILED.

    The traceback always reaches the log file; it is shown on the terminal
    only with `debug`. Otherwise a certbackup error is shown by its message
    and anything else by its type and message.

    """
    logger.log(logging.ERROR if debug else logging.DEBUG, 'Exiting abnormally:',
               exc_info=(exc_type, exc_value, trace))
    if not debug:
        if issubclass(exc_type, errors.Error):
            logger.error('%s', exc_value)
        else:
            summary = ''.join(traceback.format_exception_only(exc_type, exc_value))
            logger.error('Unexpected error: %s', summary.strip())
    sys.exit(constants.EXIT_FAILED)
