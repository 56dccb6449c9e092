"""
Configuration management for the word crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field


DEFAULT_MAX_DEPTH = 10

DEFAULT_SKIPPED_EXTENSIONS = ('jpg', 'jpeg', 'png', 'gif', 'tiff', 'bmp', 'svg')


class ConfigError(ValueError):
    """Raised for a missing, unreadable or invalid configuration."""
    pass


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    max_depth: int = DEFAULT_MAX_DEPTH
    max_concurrent_requests: int = 10
    request_timeout: int = 30
    user_agent: str = "WordCrawler/1.0"
    skipped_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_SKIPPED_EXTENSIONS)
    )


@dataclass
class RedisConfig:
    """Configuration for Redis."""
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    key_prefix: str = "wordcrawler:visited"


@dataclass
class RegistryConfig:
    """Configuration for the visited registry backend."""
    type: str = "memory"
    redis: RedisConfig = field(default_factory=RedisConfig)


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file, or defaults when no path is set."""
        config_data: Dict[str, Any] = {}
        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigError(f"Configuration file not found: {self.config_path}")

            try:
                with open(self.config_path, 'r') as file:
                    config_data = yaml.safe_load(file) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

            if not isinstance(config_data, dict):
                raise ConfigError(f"Configuration root must be a mapping: {self.config_path}")

        self._config = self._build_config(config_data)
        self._validate_config()
        return self._config

    def _build_config(self, config_data: Dict[str, Any]) -> Config:
        try:
            registry_data = dict(_section(config_data, 'registry'))
            redis_config = RedisConfig(**_section(registry_data, 'redis'))
            registry_data.pop('redis', None)

            return Config(
                crawler=CrawlerConfig(**_section(config_data, 'crawler')),
                registry=RegistryConfig(redis=redis_config, **registry_data),
                logging=LoggingConfig(**_section(config_data, 'logging')),
                monitoring=MonitoringConfig(**_section(config_data, 'monitoring'))
            )
        except TypeError as e:
            raise ConfigError(f"Unknown configuration key: {e}") from e

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ConfigError("Configuration not loaded")

        crawler = self._config.crawler
        redis_config = self._config.registry.redis
        _check_types('crawler', crawler, {
            'max_depth': int, 'max_concurrent_requests': int,
            'request_timeout': (int, float), 'user_agent': str, 'skipped_extensions': list,
        })
        _check_types('registry', self._config.registry, {'type': str})
        _check_types('registry.redis', redis_config, {
            'host': str, 'port': int, 'db': int, 'password': (str, type(None)), 'key_prefix': str,
        })
        _check_types('logging', self._config.logging, {
            'level': str, 'file': (str, type(None)), 'format': str, 'json': bool,
        })
        _check_types('monitoring', self._config.monitoring, {
            'metrics_enabled': bool, 'prometheus_port': int,
        })
        if not all(isinstance(ext, str) for ext in crawler.skipped_extensions):
            raise ConfigError("crawler.skipped_extensions must be a list of strings")

        if crawler.max_depth < 0:
            raise ConfigError("max_depth must be non-negative")

        if crawler.max_concurrent_requests < 1:
            raise ConfigError("max_concurrent_requests must be at least 1")

        if crawler.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")

        if self._config.registry.type not in ['memory', 'redis']:
            raise ConfigError("Registry type must be 'memory' or 'redis'")

        crawler.skipped_extensions = [ext.lower().lstrip('.') for ext in crawler.skipped_extensions]

        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a configuration section as a mapping, empty when unset."""
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Configuration section '{name}' must be a mapping")
    return value


def _check_types(section: str, values: Any, expected: Dict[str, Any]):
    """Raise ConfigError for any field whose value is not of the expected type."""
    for name, types in expected.items():
        value = getattr(values, name)
        # bool is an int subclass but never a valid number here
        if isinstance(value, bool) and types is not bool:
            valid = False
        else:
            valid = isinstance(value, types)
        if not valid:
            raise ConfigError(
                f"Invalid value for {section}.{name}: {value!r} ({type(value).__name__})"
            )


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file, falling back to defaults."""
    return ConfigManager(config_path).load_config()
