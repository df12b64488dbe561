"""
Core module initialization.
Exports configuration, logging and display formatting utilities.
"""

from storefront.core.config import get_settings, Settings, EnvironmentMode

__all__ = ["get_settings", "Settings", "EnvironmentMode"]
