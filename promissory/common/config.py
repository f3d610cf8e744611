# -*- coding: utf-8 -*-

"""Persistent settings of promissory, stored in ``promissory.ini``.

The file lives in the user config directory and holds a single ``[config]``
section. Every option is declared in ``_options`` with a reader, used to
convert the raw text of the file, and a fallback value used when the option
is missing or unreadable.

Until ``load()`` is called, ``get()`` only returns the fallback values.
"""

import configparser
import logging
import os.path
from . import path as promissory_path

_logger = logging.getLogger(__name__)

_SECTION = 'config'


def _read_str(raw):
    return raw


def _read_bool(raw):
    # Same vocabulary as ConfigParser.getboolean(): yes/no, on/off, 1/0 ...
    try:
        return configparser.ConfigParser.BOOLEAN_STATES[raw.lower()]
    except KeyError:
        raise ValueError(raw)


def _read_mapping(raw):
    """Read a mapping written as ``name=value;other=value2``."""
    mapping = {}
    for item in raw.split(';'):
        if not item:
            continue
        name, sep, value = item.partition('=')
        if not sep or '=' in value:
            _logger.warning('Ignore malformed "name=value" item: "%s"', item)
            continue
        mapping[name] = value
    return mapping


def _write_mapping(mapping):
    return ';'.join('%s=%s' % item for item in mapping.items())


# option name -> (reader, fallback value)
_options = {
    # Kind of scheduler built for Promises without an explicit one:
    # 'thread' or 'queue'.
    'scheduler': (_read_str, 'thread'),
    'debug_mode': (_read_bool, False),
    # Log level per logger name, given to log.set_logs_level().
    'log_levels': (_read_mapping, {})
}

_config_parser = configparser.ConfigParser()
_config_parser.add_section(_SECTION)


def _get_config_file_path():
    return os.path.join(promissory_path.get_config_dir(), 'promissory.ini')


def load():
    """Read the config file, if there is one."""
    file_path = _get_config_file_path()

    if not _config_parser.read(file_path):
        _logger.warning('Unable to load config file: %s', file_path)


def get(key):
    """Return the current value of an option.

    Args:
        key (str): option name.
    Returns:
        The value read from the config file, converted to the option type.
        The fallback value if the file doesn't set it, or sets it badly.
    Raises:
        KeyError: `key` is not a known option.
    """
    reader, fallback = _options[key]
    raw = _config_parser.get(_SECTION, key, fallback=None)
    if raw is None:
        return fallback
    try:
        return reader(raw)
    except ValueError:
        _logger.warning('Bad value "%s" for option "%s"; fallback to %r.',
                        raw, key, fallback)
        return fallback


def set(key, value):
    """Change an option and save the whole config file.

    Args:
        key (str): option name.
        value: new value. Dicts are stored as ``name=value;...``; everything
            else is stored as ``str(value)``.
    Raises:
        KeyError: `key` is not a known option.
    """
    if key not in _options:
        raise KeyError(key)
    if isinstance(value, dict):
        value = _write_mapping(value)
    _config_parser.set(_SECTION, key, str(value))

    try:
        with open(_get_config_file_path(), 'w') as config_file:
            _config_parser.write(config_file)
    except (OSError, IOError):
        _logger.warning('Unable to save the config file', exc_info=True)
    else:
        _logger.debug('Config file saved (%s changed).', key)
