"""
Authorization and throttling.

- **permissions.py**: Resolves a member's permission level from bot masters,
  Discord administrator permission and guild staff ranks.

- **gatekeeper.py**: Ordered allow/deny decision for command invocations,
  usage recording and per-guild command toggles.
"""
