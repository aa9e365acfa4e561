"""Program periodization and subscription progression engine."""

__version__ = "0.1.0"
