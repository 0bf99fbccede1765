"""Value types shared across modgate: snowflakes, permission levels, definitions and gate decisions."""
