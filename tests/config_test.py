"""
Tests for the config module
"""
import os
import tempfile

import pytest

from orgsource.config import BaseConfig, EngineConfig, EventLogBackend, MessageBroker
from orgsource.errors import ConfigError

ENGINE_VARS = [
    'ORGSOURCE_EVENT_LOG', 'ORGSOURCE_SNAPSHOT_FREQUENCY', 'ORGSOURCE_EVENT_QUEUE', 'ORGSOURCE_MESSAGE_BROKER',
    'POSTGRES_HOST', 'POSTGRES_PORT', 'POSTGRES_USER', 'POSTGRES_PASSWORD', 'POSTGRES_DB',
    'RABBITMQ_HOST', 'RABBITMQ_PORT', 'RABBITMQ_USER', 'RABBITMQ_PASSWORD', 'RABBITMQ_VIRTUAL_HOST',
    'AWS_REGION',
]


@pytest.fixture
def _env_setup():
    """
    declare an environment
    """
    os.environ["VAR_1"] = "value1"
    os.environ["TO_LIST_VAR"] = "A, B,C"
    os.environ["JSON_STRING"] = '{"some_key":"some_value"}'
    yield
    del os.environ["VAR_1"]
    del os.environ["TO_LIST_VAR"]
    del os.environ["JSON_STRING"]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every engine variable so defaults apply."""
    for name in ENGINE_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestBaseConfig:
    def test_get_env_var(self, _env_setup):
        config = BaseConfig()
        assert config.get_env_var("VAR_1") == "value1"
        assert config.get_env_var("MISSING_VAR", warn=False) is None
        assert config.get_env_var("MISSING_VAR", "fallback") == "fallback"
        assert "VAR_1" in config.get_env_vars()

    def test_var_to_list(self, _env_setup):
        config = BaseConfig()
        assert config.convert_var_into_list("TO_LIST_VAR") is True
        assert config.get_env_var("TO_LIST_VAR") == ["A", "B", "C"]
        assert config.convert_var_into_list("MISSING_VAR") is False

    def test_get_var_as_list(self, _env_setup):
        config = BaseConfig()
        assert config.get_var_as_list("TO_LIST_VAR") == ["A", "B", "C"]
        assert config.get_var_as_list("MISSING_VAR") is None

    def test_var_from_json(self, _env_setup):
        config = BaseConfig()
        assert config.convert_var_from_json_string("JSON_STRING") is True
        assert config.get_env_var("JSON_STRING") == {"some_key": "some_value"}

    def test_var_from_invalid_json(self, monkeypatch):
        monkeypatch.setenv("JSON_STRING", "{not json")
        assert BaseConfig().convert_var_from_json_string("JSON_STRING") is False

    def test_env_files_override_environment(self, monkeypatch):
        monkeypatch.setenv("VAR_1", "from-environment")
        with tempfile.TemporaryDirectory() as tmpdir:
            env_path = os.path.join(tmpdir, 'local.env')
            with open(env_path, 'w', encoding='UTF-8') as f:
                f.write('VAR_1=from-file\nVAR_2=only-in-file\n')
            config = BaseConfig(env_files=[env_path])
        assert config.get_env_var("VAR_1") == "from-file"
        assert config.get_env_var("VAR_2") == "only-in-file"


class TestLoadToml:
    def test_load_pyproject_version(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with open(os.path.join(tmpdir, 'pyproject.toml'), 'w', encoding='UTF-8') as f:
                f.write('version = "2.5.0"')
            config = BaseConfig()
            assert config.load_toml(tmpdir, log_version_string=False) is True
            assert config.get_project_version() == "2.5.0"

    def test_load_setup_py_version(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with open(os.path.join(tmpdir, 'setup.py'), 'w', encoding='UTF-8') as f:
                f.write("setup(\n    name='orgsource',\n    version='0.3.1',\n)")
            config = BaseConfig()
            assert config.load_toml(tmpdir, log_version_string=False) is True
            assert config.get_project_version() == "0.3.1"

    def test_version_not_found(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with open(os.path.join(tmpdir, 'pyproject.toml'), 'w', encoding='UTF-8') as f:
                f.write('[project]\nname = "test"')
            config = BaseConfig()
            assert config.load_toml(tmpdir, log_version_string=False) is False
            assert config.get_project_version() is None

    def test_no_packaging_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert BaseConfig().load_toml(tmpdir) is False


class TestEngineConfig:
    def test_defaults(self, clean_env):
        config = EngineConfig()
        config.validate_env_vars()
        assert config.event_log_backend is EventLogBackend.memory
        assert config.message_broker is MessageBroker.none
        assert config.snapshot_frequency == 50
        assert config.event_queue == 'organization-events'

    def test_postgres_settings(self, clean_env):
        clean_env.setenv('ORGSOURCE_EVENT_LOG', 'Postgres')
        clean_env.setenv('POSTGRES_HOST', 'db')
        clean_env.setenv('POSTGRES_PORT', '6543')
        clean_env.setenv('POSTGRES_USER', 'org')
        clean_env.setenv('POSTGRES_PASSWORD', 'secret')
        clean_env.setenv('POSTGRES_DB', 'orgs')
        config = EngineConfig()
        config.validate_env_vars()
        assert config.event_log_backend is EventLogBackend.postgres
        assert config.postgres_settings == {
            'host': 'db', 'port': 6543, 'user': 'org', 'password': 'secret', 'database': 'orgs'}

    def test_rabbitmq_settings(self, clean_env):
        clean_env.setenv('ORGSOURCE_MESSAGE_BROKER', 'rabbitmq')
        clean_env.setenv('RABBITMQ_HOST', 'mq')
        clean_env.setenv('RABBITMQ_USER', 'guest')
        clean_env.setenv('RABBITMQ_PASSWORD', 'guest')
        config = EngineConfig()
        with pytest.raises(ConfigError) as excinfo:
            config.validate_env_vars()
        assert str(excinfo.value) == "RABBITMQ_PORT is required"

        clean_env.setenv('RABBITMQ_PORT', '5672')
        config = EngineConfig()
        config.validate_env_vars()
        assert config.rabbitmq_settings['virtual_host'] == '/'
        assert config.rabbitmq_settings['port'] == 5672

    def test_every_problem_is_reported(self, clean_env):
        clean_env.setenv('ORGSOURCE_EVENT_LOG', 'cassandra')
        clean_env.setenv('ORGSOURCE_MESSAGE_BROKER', 'sqs')
        clean_env.setenv('ORGSOURCE_SNAPSHOT_FREQUENCY', '-1')
        with pytest.raises(ConfigError) as excinfo:
            EngineConfig().validate_env_vars()
        lines = str(excinfo.value).split("\n")
        assert len(lines) == 3
        assert lines[0].startswith("ORGSOURCE_EVENT_LOG must be one of")
        assert "ORGSOURCE_SNAPSHOT_FREQUENCY must be at least 0, got -1" in lines
        assert "AWS_REGION is required" in lines

    def test_snapshot_frequency_must_be_integer(self, clean_env):
        clean_env.setenv('ORGSOURCE_SNAPSHOT_FREQUENCY', 'often')
        with pytest.raises(ConfigError):
            EngineConfig().validate_env_vars()
