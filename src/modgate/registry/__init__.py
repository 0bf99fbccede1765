"""Command and filter definitions organised in a category tree with a flat name index."""
