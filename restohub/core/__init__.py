"""
Core module initialization.
Exports configuration, logging utilities, errors and the TTL cache.
"""

from restohub.core.config import get_settings, Settings, EnvironmentMode
from restohub.core.cache import TTLCache, MISS

__all__ = ["get_settings", "Settings", "EnvironmentMode", "TTLCache", "MISS"]
