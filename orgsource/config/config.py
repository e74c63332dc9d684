"""
Config classes that read settings from the environment and .env files.
"""
import os
import re
import json
from abc import abstractmethod
from typing import Any, Dict, List, Optional
import logging
from dotenv import dotenv_values, load_dotenv

from orgsource.errors import ConfigError

from .enums import EventLogBackend, MessageBroker

logger = logging.getLogger(__name__)


class BaseConfig():
    """
    Config class that reads the process environment, a ``.env`` file and any
    extra env files. Later env files override earlier ones and the environment.
    """
    def __init__(self, env_files: Optional[List[str]] = None):
        load_dotenv()
        self.project_version = None
        self.env_vars = {key: os.getenv(key) for key in os.environ}
        for env_file in env_files or []:
            self.env_vars.update(dotenv_values(env_file))

    def get_env_vars(self) -> dict:
        return self.env_vars

    def get_env_var(self, var_name: str, default: Any = None, warn: bool = True):
        """
        Retrieve the value of the specified environment variable
        Args:
            var_name (str) : Name of the env var to fetch
            default : Value returned when the variable is not set
            warn (bool) : Log a warning when the variable is missing and has no default
        """
        if var_name in self.env_vars.keys():
            return self.env_vars[var_name]
        if warn and default is None:
            logger.warning("Variable %s not found.", var_name)
        return default

    def load_toml(self, toml_folder_dir: str, log_version_string: bool = True) -> bool:
        """
        Read the project version from ``pyproject.toml`` or, failing that, ``setup.py``.
        Args:
            toml_folder_dir (str) : Path to the folder holding the packaging file.
        """
        for file_name in ('pyproject.toml', 'setup.py'):
            path = os.path.join(toml_folder_dir, file_name)
            if not os.path.isfile(path):
                continue
            with open(path, 'r', encoding='UTF-8') as file:
                version_match = re.search(r'version\s*=\s*[\'"]([^\'"]+)[\'"]', file.read())
            if version_match:
                self.project_version = version_match.group(1)
                if log_version_string:
                    logger.info('Project Version: %s', self.project_version)
                return True
            logger.error('Version not found in %s.', file_name)
            return False
        logger.error('No packaging file found for toml_folder_dir = %s', toml_folder_dir)
        return False

    def get_project_version(self) -> Optional[str]:
        return self.project_version

    def convert_var_into_list(self, var_name: str) -> bool:
        """
        Converts a comma-delimited var into a list
        """
        if var_name in self.env_vars.keys():
            value = self.env_vars[var_name]
            if not isinstance(value, str):
                logger.error("Error: %s is not a comma-delimited string.", var_name)
                return False
            self.env_vars[var_name] = [item.strip() for item in value.split(",")]
            return True
        logger.warning("Warning: var %s not found.", var_name)
        return False

    def get_var_as_list(self, var_name: str) -> Optional[List[str]]:
        """
        Returns a comma-delimited var as list
        """
        value = self.env_vars.get(var_name)
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        logger.warning("Warning: var %s not found.", var_name)
        return None

    def convert_var_from_json_string(self, var_name: str) -> bool:
        """
        Converts a json string into a pythonic type
        """
        if var_name in self.env_vars.keys():
            try:
                self.env_vars[var_name] = json.loads(self.env_vars[var_name])
                return True
            except (TypeError, ValueError):
                logger.error("Error: Invalid input format. Please provide a proper json string.")
                return False
        logger.warning("Warning: var %s not found.", var_name)
        return False

    @abstractmethod
    def validate_env_vars(self):
        """
        Abstract method for validation of the env vars.
        """


class EngineConfig(BaseConfig):
    """
    Settings for wiring an ``OrganizationRepository``.

    ORGSOURCE_EVENT_LOG          memory | postgres (default memory)
    ORGSOURCE_SNAPSHOT_FREQUENCY events between snapshots, 0 disables (default 50)
    ORGSOURCE_EVENT_QUEUE        queue events are published to (default organization-events)
    ORGSOURCE_MESSAGE_BROKER     none | rabbitmq | sqs (default none)
    """

    DEFAULT_SNAPSHOT_FREQUENCY = 50
    DEFAULT_EVENT_QUEUE = 'organization-events'

    POSTGRES_VARS = ['POSTGRES_HOST', 'POSTGRES_PORT', 'POSTGRES_USER', 'POSTGRES_PASSWORD', 'POSTGRES_DB']
    RABBITMQ_VARS = ['RABBITMQ_HOST', 'RABBITMQ_PORT', 'RABBITMQ_USER', 'RABBITMQ_PASSWORD']

    @property
    def event_log_backend(self) -> EventLogBackend:
        return EventLogBackend(self.get_env_var('ORGSOURCE_EVENT_LOG', EventLogBackend.memory.value).lower())

    @property
    def snapshot_frequency(self) -> int:
        return int(self.get_env_var('ORGSOURCE_SNAPSHOT_FREQUENCY', self.DEFAULT_SNAPSHOT_FREQUENCY))

    @property
    def event_queue(self) -> str:
        return self.get_env_var('ORGSOURCE_EVENT_QUEUE', self.DEFAULT_EVENT_QUEUE)

    @property
    def message_broker(self) -> MessageBroker:
        return MessageBroker(self.get_env_var('ORGSOURCE_MESSAGE_BROKER', MessageBroker.none.value).lower())

    @property
    def postgres_settings(self) -> Dict[str, Any]:
        return {
            'host': self.get_env_var('POSTGRES_HOST'),
            'port': int(self.get_env_var('POSTGRES_PORT', 5432)),
            'user': self.get_env_var('POSTGRES_USER'),
            'password': self.get_env_var('POSTGRES_PASSWORD'),
            'database': self.get_env_var('POSTGRES_DB'),
        }

    @property
    def rabbitmq_settings(self) -> Dict[str, Any]:
        return {
            'host': self.get_env_var('RABBITMQ_HOST'),
            'port': int(self.get_env_var('RABBITMQ_PORT', 5672)),
            'username': self.get_env_var('RABBITMQ_USER'),
            'password': self.get_env_var('RABBITMQ_PASSWORD'),
            'virtual_host': self.get_env_var('RABBITMQ_VIRTUAL_HOST', '/'),
        }

    @property
    def sqs_settings(self) -> Dict[str, Any]:
        return {
            'aws_access_key_id': self.get_env_var('AWS_ACCESS_KEY_ID', warn=False),
            'aws_access_key_secret': self.get_env_var('AWS_SECRET_ACCESS_KEY', warn=False),
            'region_name': self.get_env_var('AWS_REGION', warn=False),
        }

    def _missing(self, var_names: List[str]) -> List[str]:
        return [f"{name} is required" for name in var_names if not self.env_vars.get(name)]

    def _check_int(self, var_name: str, minimum: int = None) -> List[str]:
        value = self.env_vars.get(var_name)
        if value is None:
            return []
        try:
            number = int(value)
        except (TypeError, ValueError):
            return [f"{var_name} must be an integer, got {value!r}"]
        if minimum is not None and number < minimum:
            return [f"{var_name} must be at least {minimum}, got {number}"]
        return []

    def validate_env_vars(self):
        """
        Raises:
            ConfigError: Listing every problem found, one per line.
        """
        errors = []
        try:
            backend = self.event_log_backend
        except ValueError:
            backend = None
            errors.append(f"ORGSOURCE_EVENT_LOG must be one of: {', '.join(b.value for b in EventLogBackend)}")
        try:
            broker = self.message_broker
        except ValueError:
            broker = None
            errors.append(f"ORGSOURCE_MESSAGE_BROKER must be one of: {', '.join(b.value for b in MessageBroker)}")

        errors += self._check_int('ORGSOURCE_SNAPSHOT_FREQUENCY', minimum=0)
        if backend == EventLogBackend.postgres:
            errors += self._missing(self.POSTGRES_VARS)
            errors += self._check_int('POSTGRES_PORT', minimum=1)
        if broker == MessageBroker.rabbitmq:
            errors += self._missing(self.RABBITMQ_VARS)
            errors += self._check_int('RABBITMQ_PORT', minimum=1)
        if broker == MessageBroker.sqs:
            errors += self._missing(['AWS_REGION'])

        if errors:
            raise ConfigError("\n".join(errors))
