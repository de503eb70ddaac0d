"""
Core module initialization.
Exports configuration and logging utilities.
"""

from ghorer_khabar.core.config import get_settings, Settings, EnvironmentMode

__all__ = ["get_settings", "Settings", "EnvironmentMode"]
