"""
Content filters.

- **filter_engine.py**: Filter registry, per-guild enable/disable and message
  scanning.

- **builtin_filters.py**: Invite, link, caps and mass mention filters.
"""
