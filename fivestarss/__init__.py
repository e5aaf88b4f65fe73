"""
FivestaRSS - app-store reviews republished as RSS feeds.

The feed document is the only persistent state: every polling cycle
decodes it, merges freshly fetched reviews and writes it back.
"""
