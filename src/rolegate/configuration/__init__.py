"""
Configuration management for Rolegate.

- **app_configuration.py**: YAML configuration loader guarded by a shared file
  lock. Provides owner ids, staff role bindings, rate limiter overrides and the
  expiry sweep interval. Falls back gracefully on missing or malformed files.

- **role_settings.py**: Typed accessors for the configured staff roles.
"""
