"""Configuration: environment identity values and YAML application settings."""
from .manager import Config, ConfigManager
from .settings import AppSettings, get_settings

__all__ = ["Config", "ConfigManager", "AppSettings", "get_settings"]
