# -*- coding: utf-8 -*-

"""Configuration module of the logs.

This module configure the python ``logging`` module, in order to have useful
and easy to activate logs.

Log entries are displayed to the output console and, if a filename is given,
written in a file of the user log directory.

On console output, if the system supports it, logs entries will be colorized.

Non-caught exceptions are logged before the program quit.
"""

import logging
import os.path
import sys

from . import path as promissory_path


def _support_color_output():
    """Try to guess if the standard output supports color term code.

    Returns:
        boolean: True if we are sure the output supports color; False otherwise
    """
    if hasattr(sys.stdout, 'isatty') and sys.stdout.isatty():
        if not sys.platform.startswith('win'):
            return True
    return False


def _get_file_handler(filename):
    """Open a new file for using as a log output.

    Args:
        filename (str): name of the log file. Ex: 'promissory.log'
    Returns:
        FileHandler: a valid fileHandler using the log file, or None if the
            file creation has failed.
    """
    try:
        log_path = os.path.join(promissory_path.get_log_dir(), filename)
        return logging.FileHandler(log_path, mode='a')
    except (OSError, IOError):
        logging.getLogger(__name__).warning('Unable to create the log file',
                                            exc_info=True)
        return None


class ColoredFormatter(logging.Formatter):
    """Formatter who display colored messages using ANSI escape codes."""

    _colors = {
        'RESET': '\033[0m',
        'DEBUG': '\033[34m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[31m',
        'NAME': '\033[36m',
        'DATE': '\033[30;1m',
        'EXCEPTION_NAME': '\033[31;1m',
        'EXCEPTION_STR': '\033[37;1m'
    }

    def _colorize(self, msg, color):
        return self._colors.get(color, '') + msg + self._colors.get('RESET')

    def formatTime(self, record, datefmt=None):
        result = logging.Formatter.formatTime(self, record, datefmt)
        return self._colorize(result, 'DATE')

    def formatException(self, ei):
        msg = logging.Formatter.formatException(self, ei)
        msg_lines = msg.split('\n')
        last_line = msg_lines[-1]
        result = '\n'.join(msg_lines[:-1]) + '\n'
        result += self._colorize(last_line.split(':')[0], 'EXCEPTION_NAME')
        result += ':' + self._colorize(':'.join(last_line.split(':')[1:]),
                                       'EXCEPTION_STR')
        return result

    def format(self, record):
        # The record is shared by all handlers: it must not be modified.
        record = logging.makeLogRecord(record.__dict__)
        record.name = self._colorize(record.name, 'NAME')
        record.levelname = self._colorize(record.levelname, record.levelname)
        return logging.Formatter.format(self, record)


def _excepthook(exctype, value, traceback):
    logging.getLogger(__name__).critical(
        'Uncaught exception', exc_info=(exctype, value, traceback))


class Context(object):
    """Context class used to open and close log handlers."""

    date_format = '%Y-%m-%d %H:%M:%S'
    string_format = '%(asctime)s %(levelname)-7s %(name)s - %(message)s'

    def __init__(self, filename=None, stream=None):
        """Prepare a new log context.

        Args:
            filename (str, optional): name of the log file, created in the
                user log directory. By default, no file is used.
            stream (optional): console stream. Default to sys.stderr.
        """
        self._filename = filename
        self._stream = stream
        self._handlers = []
        self._excepthook = None

    def __enter__(self):
        """Open the log file and prepare the logging module."""

        logging.captureWarnings(True)
        root_logger = logging.getLogger()

        formatter = logging.Formatter(fmt=self.string_format,
                                      datefmt=self.date_format)

        console_handler = logging.StreamHandler(self._stream)
        if self._stream is None and _support_color_output():
            console_handler.setFormatter(
                ColoredFormatter(fmt=self.string_format,
                                 datefmt=self.date_format))
        else:
            console_handler.setFormatter(formatter)
        self._handlers.append(console_handler)

        if self._filename:
            file_handler = _get_file_handler(self._filename)
            if file_handler:
                file_handler.setFormatter(formatter)
                self._handlers.append(file_handler)

        for handler in self._handlers:
            root_logger.addHandler(handler)

        # Before any configuration, all messages should be displayed.
        set_debug_mode(True)

        # Log all uncaught exceptions
        self._excepthook = sys.excepthook
        sys.excepthook = _excepthook
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Release resources (log files, ...)"""
        logging.getLogger(__name__).debug('Stop logger ...')
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        sys.excepthook = self._excepthook
        logging.captureWarnings(False)


def set_logs_level(levels):
    """Configure a fine-grained log levels for the different modules.

    Args:
        levels (dict): A list of tuple associating a module name and a log
            level. A log level can be a number or a str representing one of the
            logging levels (DEBUG, WARNING, ...). The level name will be
            converted to uppercase.
            Invalids values will be ignored.

    Example:

        >>> # Accept DEBUG logs only for the scheduler
        >>> set_logs_level({'promissory': 'info',
        ...                 'promissory.scheduler': 'debug'})
    """
    for (module, level) in levels.items():
        try:
            if isinstance(level, str):
                level = level.upper()
                if level.isdigit():
                    level = int(level)
            logging.getLogger(module).setLevel(level)
        except (TypeError, ValueError):
            logger = logging.getLogger(__name__)
            logger.warning('Invalid log level "%s" for logger "%s". '
                           'Will be ignored.',
                           level, module)


def set_debug_mode(debug):
    """Set, or unset the debug log level.

    Note: only the 'promissory' loggers are set to DEBUG. Other modules keep
    the INFO level. If needed, their level can be set by
    ``set_logs_level()``.

    Args:
        debug (boolean): if True, the promissory log level will be set to
            DEBUG. If False, it will be set to INFO.
    """
    if debug:
        logging.getLogger().setLevel(logging.INFO)
        logging.getLogger('promissory').setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.WARNING)
        logging.getLogger('promissory').setLevel(logging.INFO)


def reset():
    """Reset the root logger (remove handlers and filters)."""
    logger = logging.getLogger()

    for h in logger.handlers[:]:
        logger.removeHandler(h)
    for f in logger.filters[:]:
        logger.removeFilter(f)
