# src/app/__init__.py
"""
Application entrypoints for the bot.

- health: aiohttp liveness endpoint
- runtime: run_bot (async) and main (console script)
"""
