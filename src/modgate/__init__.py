"""
modgate - command gating and content filtering core for Discord bots

Core Components:

- **Document wrappers**: Lazily loaded, write-through views over user, guild
  and guild member documents stored in SQLite, with per-scope command usage
  timestamps and cooldown evaluation
- **Registries**: Command and filter definitions organised in a category tree,
  resolvable by name or alias at any depth
- **GateKeeper**: Ordered allow/deny decision for every command invocation
  (existence, DM capability, guild enablement, permission level, cooldown)
- **FilterEngine**: Per-guild enable state and scanning of message content
- **Moderation log**: Persisted record of staff changes and toggles

Usage:
    from modgate.main import main
    main()  # Starts the bot
"""
