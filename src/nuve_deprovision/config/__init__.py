"""Configuration management for nuve-deprovision.

This module exports the Settings class and its cached accessor.
"""

from nuve_deprovision.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
