"""
Review source adapters.

Each source exposes fetch(native_app_id, app_name) -> List[ReviewItem]
and raises ReviewSourceError on failure.
"""
