"""
Configuration for the inspection map engine.
"""

from .config import Settings, get_interaction_settings, get_settings, settings
from .interaction import InteractionSettings

__all__ = ['Settings', 'InteractionSettings', 'settings', 'get_settings', 'get_interaction_settings']
