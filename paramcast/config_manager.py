"""
Configuration management for paramcast.

This module provides flexible configuration management with support for:
- Environment variables (PARAMCAST_*)
- Configuration files (YAML/JSON)
- Configuration validation
- Hot-reloading
"""

import os
import json
import yaml
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union, List
from dataclasses import dataclass, field
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler
from pydantic import BaseModel, ValidationError, Field

from .logging_config import get_logger


logger = get_logger(__name__)


@dataclass
class ValidationSettings:
    """Validator engine settings."""
    max_depth: int = 16


@dataclass
class RequestSettings:
    """Default options for request-level validation."""
    map_params: bool = True
    filter_params: Union[bool, str, List[str]] = True
    jsonp: bool = True
    param_whitelist: List[str] = field(default_factory=list)
    param_target: Optional[str] = None


@dataclass
class LoggingSettings:
    """Logging configuration."""
    level: str = "INFO"
    enable_file_logging: bool = False
    log_file_path: Optional[str] = None


@dataclass
class ServerConfig:
    """Service identification used in structured logs."""
    service_name: str = "paramcast"
    version: str = "0.1.0"


class ConfigurationModel(BaseModel):
    """Pydantic model for configuration validation."""
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    request: RequestSettings = Field(default_factory=RequestSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerConfig = Field(default_factory=ServerConfig)

    model_config = {"arbitrary_types_allowed": True}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ['true', '1', 'yes', 'on']


def _parse_filter(value: str) -> Union[bool, List[str]]:
    lowered = value.strip().lower()
    if lowered in ['true', '1', 'yes', 'on', 'all']:
        return True
    if lowered in ['false', '0', 'no', 'off', '']:
        return False
    return [target.strip() for target in value.split(',') if target.strip()]


class ConfigFileHandler(FileSystemEventHandler):
    """File system event handler for configuration hot-reloading."""

    def __init__(self, config_manager: 'ConfigManager'):
        self.config_manager = config_manager
        super().__init__()

    def on_modified(self, event):
        if not event.is_directory and event.src_path == str(self.config_manager.config_file_path):
            logger.info(f"Configuration file {event.src_path} modified, reloading...")
            self.config_manager.reload_configuration()


class ConfigManager:
    """
    Configuration manager supporting environment variables,
    configuration files, validation, and hot-reloading.
    """

    # Environment variable -> (section, key, converter)
    ENV_MAPPINGS = {
        'PARAMCAST_MAX_DEPTH': ('validation', 'max_depth', int),
        'PARAMCAST_MAP_PARAMS': ('request', 'map_params', _parse_bool),
        'PARAMCAST_FILTER_PARAMS': ('request', 'filter_params', _parse_filter),
        'PARAMCAST_JSONP': ('request', 'jsonp', _parse_bool),
        'PARAMCAST_PARAM_TARGET': ('request', 'param_target', str),
        'PARAMCAST_LOG_LEVEL': ('logging', 'level', lambda x: x.upper()),
        'PARAMCAST_LOG_FILE': ('logging', 'log_file_path', str),
        'PARAMCAST_ENABLE_FILE_LOGGING': ('logging', 'enable_file_logging', _parse_bool),
        'PARAMCAST_SERVICE_NAME': ('server', 'service_name', str),
        'PARAMCAST_SERVICE_VERSION': ('server', 'version', str),
    }

    def __init__(self, config_file: Optional[Union[str, Path]] = None, enable_hot_reload: bool = True):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            enable_hot_reload: Whether to enable hot-reloading of configuration files
        """
        self.config_file_path = Path(config_file) if config_file else None
        self.enable_hot_reload = enable_hot_reload
        self._config_lock = threading.RLock()
        self._observer = None
        self._config: Optional[ConfigurationModel] = None

        self.load_configuration()

        if self.enable_hot_reload and self.config_file_path and self.config_file_path.exists():
            self._setup_hot_reload()

    def _setup_hot_reload(self):
        """Set up file system monitoring for hot-reloading."""
        if self._observer:
            self._observer.stop()
            self._observer.join()

        self._observer = Observer()
        event_handler = ConfigFileHandler(self)
        self._observer.schedule(event_handler, str(self.config_file_path.parent), recursive=False)
        self._observer.daemon = True
        self._observer.start()

    def load_configuration(self):
        """Load configuration from environment variables and config file."""
        with self._config_lock:
            config_dict = {}

            if self.config_file_path and self.config_file_path.exists():
                config_dict = self._load_config_file()

            # Environment variables win over the file
            config_dict = self._load_environment_variables(config_dict)

            try:
                self._config = ConfigurationModel(**config_dict)
            except ValidationError as e:
                raise ValueError(f"Configuration validation failed: {e}")

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        suffix = self.config_file_path.suffix.lower()
        if suffix not in ['.yml', '.yaml', '.json']:
            raise ValueError(f"Unsupported configuration file format: {self.config_file_path.suffix}")

        try:
            with open(self.config_file_path, 'r') as f:
                if suffix == '.json':
                    return json.load(f)
                return yaml.safe_load(f) or {}
        except Exception as e:
            raise ValueError(f"Failed to load configuration file {self.config_file_path}: {e}")

    def _load_environment_variables(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        for env_var, (section, key, type_converter) in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    config_dict.setdefault(section, {})
                    config_dict[section][key] = type_converter(env_value)
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for environment variable {env_var}: {env_value} ({e})")

        # Comma-separated whitelist
        whitelist = os.getenv('PARAMCAST_PARAM_WHITELIST')
        if whitelist:
            config_dict.setdefault('request', {})
            config_dict['request']['param_whitelist'] = [name.strip() for name in whitelist.split(',') if name.strip()]

        return config_dict

    def reload_configuration(self):
        """Reload configuration from file and environment variables."""
        try:
            self.load_configuration()
            logger.info("Configuration reloaded successfully")
        except ValueError as e:
            logger.error(f"Failed to reload configuration: {e}")

    @property
    def config(self) -> ConfigurationModel:
        """Get the current configuration."""
        with self._config_lock:
            if self._config is None:
                raise RuntimeError("Configuration not loaded")
            return self._config

    def get_max_depth(self) -> int:
        return self.config.validation.max_depth

    def get_request_options(self) -> Dict[str, Any]:
        """Get default request validation options as keyword arguments."""
        request = self.config.request
        return {
            "map_params": request.map_params,
            "filter_params": request.filter_params,
            "jsonp": request.jsonp,
            "param_whitelist": list(request.param_whitelist),
            "param_target": request.param_target,
        }

    def get_logging_kwargs(self) -> Dict[str, Any]:
        """Get keyword arguments for ``setup_logging``."""
        settings = self.config.logging
        return {
            "log_level": settings.level,
            "service_name": self.config.server.service_name,
            "version": self.config.server.version,
            "enable_file_logging": settings.enable_file_logging,
            "log_file_path": settings.log_file_path,
        }

    def stop(self):
        """Stop the configuration manager and clean up resources."""
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        # Look for config file in common locations
        config_paths = [
            Path("paramcast.yml"),
            Path("paramcast.yaml"),
            Path("paramcast.json"),
            Path("/etc/paramcast/config.yml"),
            Path("/etc/paramcast/config.yaml"),
            Path("/etc/paramcast/config.json"),
        ]

        config_file = None
        for path in config_paths:
            if path.exists():
                config_file = path
                break

        _config_manager = ConfigManager(config_file)

    return _config_manager


def set_config_manager(config_manager: ConfigManager):
    """Set the global configuration manager instance."""
    global _config_manager
    if _config_manager and _config_manager is not config_manager:
        _config_manager.stop()
    _config_manager = config_manager
