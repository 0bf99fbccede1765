"""
Utility functions and helpers for modgate.

- **logger.py**: Centralized logging configuration with colored console output
  through prompt_toolkit, a rotating per-session log file, and suppression of
  noisy Discord and database loggers.

- **parsers.py**: Edit-distance string similarity used for "did you mean"
  suggestions. Never used for authorization.

- **time_utils.py**: Epoch-millisecond clock, duration constants and
  human-readable duration formatting for cooldown messages.
"""
