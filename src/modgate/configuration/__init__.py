"""
Configuration management for modgate.

- **app_configuration.py**: YAML configuration loader for global settings read
  under a shared file lock. Provides the database path, bot masters, default
  and DM usage limits, help visibility ceiling, suggestion threshold and
  wrapper cache idle time. Falls back gracefully on missing or malformed files.
"""
