#!/usr/bin/env python3
"""
Test suite for configuration handling.
"""

import os
import stat

import pytest

from stepguide import config


@pytest.fixture(autouse=True)
def config_dir(monkeypatch, tmp_path):
    """Point the config directory at a temp dir and clear overrides"""
    monkeypatch.setattr(config, 'get_config_dir', lambda: tmp_path)
    for var in (config.ENV_API_URL, config.ENV_API_TOKEN,
                config.ENV_TUTORIALS_ENABLED, config.ENV_MAX_STEPS):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


class TestConfigFile:
    """Tests for the JSON config file"""

    def test_missing_file_is_empty(self):
        assert config.load_config() == {}

    def test_save_and_load(self, config_dir):
        config.save_config({'api_url': 'http://tutor.test'})

        assert config.load_config() == {'api_url': 'http://tutor.test'}
        mode = stat.S_IMODE(os.stat(config_dir / 'config.json').st_mode)
        assert mode == 0o600

    def test_corrupt_file_is_empty(self, config_dir):
        (config_dir / 'config.json').write_text('{not json')
        assert config.load_config() == {}

    def test_set_config_value(self):
        config.set_config_value('max_steps', 4)
        assert config.get_config_value('max_steps') == 4
        assert config.get_config_value('missing', 'default') == 'default'


class TestSettings:
    """Tests for individual settings"""

    def test_api_url_default(self):
        assert config.get_api_url() == config.DEFAULT_API_URL

    def test_api_url_env_wins(self, monkeypatch):
        config.set_config_value('api_url', 'http://from-file.test')
        monkeypatch.setenv(config.ENV_API_URL, 'http://from-env.test/')
        assert config.get_api_url() == 'http://from-env.test'

    def test_api_token(self, monkeypatch):
        assert config.get_api_token() is None
        config.set_config_value('api_token', 'file-token')
        assert config.get_api_token() == 'file-token'
        monkeypatch.setenv(config.ENV_API_TOKEN, 'env-token')
        assert config.get_api_token() == 'env-token'

    def test_clear_api_token(self):
        config.set_config_value('api_token', 'file-token')
        config.clear_api_token()
        assert config.get_api_token() is None

    def test_tutorials_enabled_by_default(self):
        assert config.tutorials_enabled() == True

    def test_tutorials_flag(self, monkeypatch):
        monkeypatch.setenv(config.ENV_TUTORIALS_ENABLED, 'false')
        assert config.tutorials_enabled() == False
        monkeypatch.setenv(config.ENV_TUTORIALS_ENABLED, 'true')
        assert config.tutorials_enabled() == True

    def test_tutorials_flag_from_file(self):
        config.set_config_value('tutorials_enabled', False)
        assert config.tutorials_enabled() == False

    def test_max_steps(self, monkeypatch):
        assert config.get_max_steps() == config.DEFAULT_MAX_STEPS
        config.set_config_value('max_steps', 6)
        assert config.get_max_steps() == 6
        monkeypatch.setenv(config.ENV_MAX_STEPS, '12')
        assert config.get_max_steps() == 12

    def test_invalid_max_steps(self, monkeypatch):
        monkeypatch.setenv(config.ENV_MAX_STEPS, 'lots')
        with pytest.raises(ValueError):
            config.get_max_steps()

        monkeypatch.setenv(config.ENV_MAX_STEPS, '0')
        with pytest.raises(ValueError):
            config.get_max_steps()

    def test_prompt_for_api_token_saves(self, monkeypatch):
        monkeypatch.setattr(config, 'getpass', lambda prompt: 'typed-token')
        monkeypatch.setattr('builtins.input', lambda prompt: '')

        assert config.prompt_for_api_token() == 'typed-token'
        assert config.get_config_value('api_token') == 'typed-token'
