"""
Core module for engine configuration and utilities.
"""
from .config import ConfigurationError, EngineConfig, settings

__all__ = ["ConfigurationError", "EngineConfig", "settings"]
