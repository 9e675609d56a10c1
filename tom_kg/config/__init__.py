"""
Configuration System

Configuration Priority (highest to lowest):
    1. Programmatic (passed to TomConfig())
    2. Environment variables (TOM_* prefix)
    3. Built-in defaults

A TOML file can be loaded explicitly with TomConfig.from_file().

Modules:
    settings: TomConfig class
    providers: Tier names and embedding model sizes
"""

from tom_kg.config.settings import TomConfig

__all__ = ["TomConfig"]
