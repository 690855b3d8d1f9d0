"""Configuration module for issuebot."""

from issuebot.config.loader import get_config_path, load_config
from issuebot.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
