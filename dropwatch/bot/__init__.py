"""
Discord bot process: slash command, startup resume and shutdown.
"""
