"""Configuration module for the AppPanel SDK."""

from apppanel.config.loader import get_config_path, load_config
from apppanel.config.schema import Configuration, Environment

__all__ = ["Configuration", "Environment", "get_config_path", "load_config"]
