"""
Infrastructure - Configuration, Services and Logging

🔧 Ambient Concerns:
- configuration: environment aware dataclass configuration
- container: the process-wide service container
- logging: handler setup for the ``starrecord`` logger
"""

from .configuration import (
    ApplicationConfig, Environment, PersistenceConfig, RecordConfig, LoggingConfig,
    get_config, set_config, configure_from_dict
)
from .container import ServiceContainer, get_service_container, set_service_container, reset_service_container
from .logging import configure_logging

__all__ = [
    "ApplicationConfig", "Environment", "PersistenceConfig", "RecordConfig", "LoggingConfig",
    "get_config", "set_config", "configure_from_dict",
    "ServiceContainer", "get_service_container", "set_service_container", "reset_service_container",
    "configure_logging"
]
