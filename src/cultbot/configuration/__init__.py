"""
Configuration management for CultBot.

- **app_configuration.py**: File-locked YAML loader for ``config/app_config.yml``.
  Falls back to built-in defaults when the file or a key is missing.

- **bot_settings.py**: Typed section helpers (Discord ids, initiation, spam,
  bot detection, profanity, live stream) exposing each setting as a property
  with its default.
"""
