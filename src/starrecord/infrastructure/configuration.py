"""
Configuration Management for StarRecord Applications

🔧 Unified Configuration System:
This module provides configuration management for StarRecord applications,
covering the persistence backend, record pipeline defaults and logging for
the different environments an application runs in.
"""

from typing import Dict, Any, Optional, List, Union
from dataclasses import dataclass, field
from enum import Enum
import json
import os
from pathlib import Path

class Environment(Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

@dataclass
class PersistenceConfig:
    """Persistence layer configuration"""
    default_backend: str = "memory"
    database_url: str = "sqlite:///starrecord.db"
    echo: bool = False
    # strftime syntax; the storage format for date attributes
    date_format: str = "%Y-%m-%d %H:%M:%S"
    duplicate_cache: bool = True

@dataclass
class RecordConfig:
    """Defaults applied to every record type unless the type overrides them"""
    trim_string_attributes: bool = True
    prevent_lazy_loading: bool = False
    # Relation kinds whose deferred bindings are replayed before the parent row is written
    deferred_before_kinds: List[str] = field(default_factory=list)
    deferred_binding_ttl_hours: int = 5

@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None

@dataclass
class ApplicationConfig:
    """Complete application configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    records: RecordConfig = field(default_factory=RecordConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def for_environment(cls, environment: Environment) -> 'ApplicationConfig':
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.debug = True
            config.logging.level = "DEBUG"
            config.persistence.echo = True

        elif environment == Environment.TESTING:
            config.persistence.database_url = "sqlite://"
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.debug = False
            config.logging.level = "INFO"
            config.records.prevent_lazy_loading = True

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary"""
        environment = Environment(config_dict.get("environment", Environment.DEVELOPMENT.value))
        config = cls.for_environment(environment)

        if "debug" in config_dict:
            config.debug = config_dict["debug"]

        # Update nested configs, ignoring unknown keys
        for section in ("persistence", "records", "logging"):
            for key, value in config_dict.get(section, {}).items():
                target = getattr(config, section)
                if hasattr(target, key):
                    setattr(target, key, value)

        return config

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'ApplicationConfig':
        """Load configuration from a JSON file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix != '.json':
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        with open(config_path) as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_environment(cls) -> 'ApplicationConfig':
        """Create configuration from environment variables"""
        env_name = os.getenv('STARRECORD_ENV', 'development')
        environment = Environment(env_name)

        config = cls.for_environment(environment)

        # Override with environment variables
        if os.getenv('STARRECORD_DEBUG'):
            config.debug = os.getenv('STARRECORD_DEBUG').lower() == 'true'

        if os.getenv('STARRECORD_DATABASE_URL'):
            config.persistence.database_url = os.getenv('STARRECORD_DATABASE_URL')
            config.persistence.default_backend = "sql"

        if os.getenv('STARRECORD_LOG_LEVEL'):
            config.logging.level = os.getenv('STARRECORD_LOG_LEVEL').upper()

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            "environment": self.environment.value,
            "debug": self.debug,
            "persistence": {
                "default_backend": self.persistence.default_backend,
                "database_url": self.persistence.database_url,
                "echo": self.persistence.echo,
                "date_format": self.persistence.date_format,
                "duplicate_cache": self.persistence.duplicate_cache
            },
            "records": {
                "trim_string_attributes": self.records.trim_string_attributes,
                "prevent_lazy_loading": self.records.prevent_lazy_loading,
                "deferred_before_kinds": list(self.records.deferred_before_kinds),
                "deferred_binding_ttl_hours": self.records.deferred_binding_ttl_hours
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file_path": self.logging.file_path
            }
        }

# Global configuration management
_current_config: Optional[ApplicationConfig] = None

def set_config(config: Optional[ApplicationConfig]):
    """Set the global configuration"""
    global _current_config
    _current_config = config

def get_config() -> ApplicationConfig:
    """Get the current global configuration"""
    global _current_config

    if _current_config is None:
        # Auto-create from environment if not set
        _current_config = ApplicationConfig.from_environment()

    return _current_config

def configure_from_dict(config_dict: Dict[str, Any]) -> ApplicationConfig:
    """Configure application from dictionary"""
    config = ApplicationConfig.from_dict(config_dict)
    set_config(config)
    return config

# Export main components
__all__ = [
    "ApplicationConfig", "Environment", "PersistenceConfig", "RecordConfig",
    "LoggingConfig", "set_config", "get_config", "configure_from_dict"
]
