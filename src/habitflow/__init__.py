"""HabitFlow routine engine package."""

from __future__ import annotations

from .app import AppContext, create_app_context
from .config import BaseConfig, DevConfig

__all__ = ["AppContext", "BaseConfig", "DevConfig", "create_app_context"]
