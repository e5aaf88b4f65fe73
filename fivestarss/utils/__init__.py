"""
Utility modules for FivestaRSS.

- Storage: path-safe, atomic access to feed documents
"""
