# -*- coding: utf-8 -*-

import logging
import os.path

import pytest

import promissory
from promissory.common import config


@pytest.fixture
def config_file(tmpdir, monkeypatch):
    """Redirect the config file into a temporary folder.

    Returns:
        str: path of the (not yet created) config file.
    """
    path = str(tmpdir.join('promissory.ini'))
    monkeypatch.setattr(config, '_get_config_file_path', lambda: path)
    return path


def _reset_parser():
    config._config_parser.remove_section('config')
    config._config_parser.add_section('config')


class TestConfigLoad(object):

    def setup_method(self, meth):
        _reset_parser()

    def teardown_method(self, meth):
        _reset_parser()

    def test_load_without_existing_file(self, config_file, caplog):
        with caplog.at_level(logging.WARNING):
            config.load()
        assert 'Unable to load config file' in caplog.text

    def test_load_with_existing_file(self, config_file, caplog):
        with open(config_file, 'w') as f:
            f.write('[config]\nscheduler = queue\n')

        with caplog.at_level(logging.WARNING):
            config.load()
        assert caplog.text == ''
        assert config.get('scheduler') == 'queue'

    def test_set_then_load(self, config_file):
        config.set('debug_mode', True)
        assert os.path.exists(config_file)

        _reset_parser()
        assert config.get('debug_mode') is False
        config.load()
        assert config.get('debug_mode') is True


class TestConfigGet(object):

    def setup_method(self, meth):
        _reset_parser()

    def teardown_method(self, meth):
        _reset_parser()

    def test_key_does_not_exist(self):
        with pytest.raises(KeyError):
            config.get('plop')

    def test_default_values(self):
        assert config.get('scheduler') == 'thread'
        assert config.get('debug_mode') is False
        assert config.get('log_levels') == {}

    def test_get_a_bool_value(self):
        config._config_parser.set('config', 'debug_mode', 'yes')
        assert config.get('debug_mode') is True

    def test_get_a_bool_with_invalid_value(self, caplog):
        config._config_parser.set('config', 'debug_mode', 'maybe')
        with caplog.at_level(logging.WARNING):
            assert config.get('debug_mode') is False
        assert 'debug_mode' in caplog.text

    def test_get_a_dict(self):
        config._config_parser.set('config', 'log_levels',
                                  'promissory=debug;asyncio=error')
        assert config.get('log_levels') == {'promissory': 'debug',
                                            'asyncio': 'error'}

    def test_get_a_dict_with_invalid_pair(self, caplog):
        config._config_parser.set('config', 'log_levels',
                                  'promissory=debug;invalid')
        with caplog.at_level(logging.WARNING):
            assert config.get('log_levels') == {'promissory': 'debug'}
        assert 'invalid' in caplog.text


class TestConfigSet(object):

    def setup_method(self, meth):
        _reset_parser()

    def teardown_method(self, meth):
        _reset_parser()

    def test_set_a_not_existing_key(self, config_file):
        with pytest.raises(KeyError):
            config.set('plop', 42)

    def test_set_a_string_value(self, config_file):
        config.set('scheduler', 'queue')
        assert config.get('scheduler') == 'queue'

    def test_set_a_dict_value(self, config_file):
        config.set('log_levels', {'promissory.scheduler': 'info'})
        assert config.get('log_levels') == {'promissory.scheduler': 'info'}

    def test_set_writes_the_file(self, config_file):
        config.set('scheduler', 'queue')

        with open(config_file) as f:
            content = f.read()
        assert 'scheduler = queue' in content


class TestConfigure(object):

    def setup_method(self, meth):
        _reset_parser()
        self._levels = {
            name: logging.getLogger(name).level
            for name in ('', 'promissory', 'promissory.scheduler')
        }

    def teardown_method(self, meth):
        _reset_parser()
        for name, level in self._levels.items():
            logging.getLogger(name).setLevel(level)

    def test_configure_applies_log_settings(self, config_file):
        with open(config_file, 'w') as f:
            f.write('[config]\n'
                    'debug_mode = true\n'
                    'log_levels = promissory.scheduler=warning\n')

        promissory.configure()

        assert logging.getLogger('promissory').level == logging.DEBUG
        assert logging.getLogger('promissory.scheduler').level == \
            logging.WARNING
