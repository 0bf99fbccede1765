"""
Discord integration for modgate.

- **services.py**: Container wiring the store, wrappers, registries and
  engines; passed explicitly to every cog.

- **gating.py**: Base cog running slash commands through the gatekeeper and
  recording their usage.

- **cogs/**: Management commands, message filtering and lifecycle events.
"""
