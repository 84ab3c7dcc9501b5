"""
                RestoHub Restaurant Backend

Ordering, menu and admin backend for a single-location restaurant.
Data lives in a remote document store (Firestore) with per-collection
JSON files as the local fallback, fronted by an in-memory TTL cache.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
