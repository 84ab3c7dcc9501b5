"""
Data Access Façade

Usage:
    from restohub.services.data import build_data_service

    data = build_data_service(get_settings(), TTLCache())
    orders = await data.orders.list_orders()
"""

from restohub.services.data.records import CollectionRead, RecordBatch, WriteResult
from restohub.services.data.registry import COLLECTIONS, CollectionSpec, get_collection
from restohub.services.data.service import DataService, build_data_service

__all__ = [
    "DataService",
    "build_data_service",
    "CollectionRead",
    "RecordBatch",
    "WriteResult",
    "COLLECTIONS",
    "CollectionSpec",
    "get_collection",
]
