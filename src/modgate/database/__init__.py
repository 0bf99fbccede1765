"""
Database package for modgate.

Provides the aiosqlite connection manager, schema creation, the JSON document
store backing the document wrappers, typed field paths with set/unset update
operations, and the moderation log repository.
"""
