"""
                        Services Module

Business logic services. Concerns with an external backend follow the
base / mock / real layout with a cached factory:

Services:
    - store: Remote document store (Firestore) and local JSON files
    - profiles: Customer profile store
    - data: Data access façade and per-collection repositories
    - analytics, statistics: Derived order data
    - migration: Order → customer profile linkage
    - exporter: Lock-guarded spreadsheet exports
"""

from restohub.services.exporter import SpreadsheetExporter

__all__ = ["SpreadsheetExporter"]
