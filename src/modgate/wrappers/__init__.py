"""
Lazily loaded document wrappers.

- **doc_wrapper.py**: Base class with per-field presence slots, shared
  in-flight loads, write-through updates and change subscribers.

- **user_wrapper.py** / **guild_member_wrapper.py**: Per-scope command
  last-used timestamps and cooldown checks.

- **guild_wrapper.py**: Guild configuration (usage limits, command and filter
  state, staff ranks, log channel).

- **wrapper_cache.py** / **state_manager.py**: One live wrapper per key, with
  idle eviction driven from outside.
"""
