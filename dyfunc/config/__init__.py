"""Configuration module for dyfunc."""

from dyfunc.config.loader import load_config, get_config_path, save_config
from dyfunc.config.schema import Config, AuthConfig, DispatchConfig, GatewayConfig, LoggingConfig

__all__ = [
    "Config",
    "AuthConfig",
    "DispatchConfig",
    "GatewayConfig",
    "LoggingConfig",
    "load_config",
    "save_config",
    "get_config_path",
]
