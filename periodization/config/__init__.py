"""Application configuration module.

- **settings.py**: Environment-based settings (Pydantic BaseSettings)
  - Database URL, adherence smoothing, slot constraint enforcement
  - Notification webhook target
  - Loaded from .env file via pydantic-settings
"""
from periodization.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
