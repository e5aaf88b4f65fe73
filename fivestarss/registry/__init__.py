"""
App Registry Module.

Loads and validates the monitored apps; doubles as the feed-file allow-list.
"""
