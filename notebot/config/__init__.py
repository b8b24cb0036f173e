"""Configuration module for notebot."""

from notebot.config.loader import get_config_path, load_config, save_config
from notebot.config.schema import Config

__all__ = ["Config", "get_config_path", "load_config", "save_config"]
