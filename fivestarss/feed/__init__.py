"""
Feed core.

- Codec: ReviewItem list <-> RSS 2.0 document
- Description: labeled-paragraph scanner for item descriptions
- Reconciler: per-app merge, dedup and service alerts
"""
