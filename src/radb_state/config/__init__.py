"""
Configuration loading for the state layer.
"""

from .config_loader import DEFAULT_STATE_DIR, StateConfig

__all__ = ["DEFAULT_STATE_DIR", "StateConfig"]
