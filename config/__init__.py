# Configuration module exports
from .app_config import AppConfig, VlessConfig, ServerConfig, MonitoringConfig, get_config, set_config
from .constants import VlessConstants
from .paths import StatePaths

__all__ = [
    'AppConfig',
    'VlessConfig',
    'ServerConfig',
    'MonitoringConfig',
    'get_config',
    'set_config',
    'VlessConstants',
    'StatePaths'
]
