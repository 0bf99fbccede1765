"""
Cogs package for modgate.
Each module defines a cog class and a setup function taking the bot and the
shared services. The cogs are loaded explicitly in main.py.
"""
