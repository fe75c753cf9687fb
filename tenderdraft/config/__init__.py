"""Configuration: exports Settings and load_config."""

from tenderdraft.config.loader import load_config
from tenderdraft.config.settings import Settings

__all__ = ["Settings", "load_config"]
