"""
Data models for FivestaRSS.

- ReviewItem: a review (or service alert) normalized across stores
- MonitoredApp: one configured app and its feed file
"""
