"""
Spreadsheet Exporter with Concurrency Control

Writes the order log and the inventory to .xlsx files for the back office:
- orders.xlsx: one row per order
- inventory.xlsx: one row per inventory item

Each export replaces the previous file. Writers are serialized with a
FileLock next to the workbook.

Version: 1.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

import pandas as pd
from filelock import FileLock, Timeout

logger = logging.getLogger(__name__)


class SpreadsheetExporter:
    """Lock-guarded Excel exports of orders and inventory."""

    ORDER_COLUMNS = [
        "order_id",
        "date_time",
        "order_type",
        "status",
        "table_number",
        "customer_name",
        "customer_phone",
        "delivery_address",
        "staff_member",
        "items",
        "item_count",
        "total",
        "cancellation_reason",
        "migrated_to",
        "exported_at",
    ]

    INVENTORY_COLUMNS = [
        "item_id",
        "name",
        "category",
        "current_stock",
        "unit",
        "minimum_stock",
        "maximum_stock",
        "status",
        "unit_price",
        "final_price",
        "supplier",
        "supplier_phone",
        "last_restocked",
        "expiry_date",
        "exported_at",
    ]

    def __init__(self, export_directory: str | Path, lock_timeout: int = 10):
        self.export_directory = Path(export_directory)
        self.lock_timeout = lock_timeout

    @property
    def orders_file(self) -> Path:
        return self.export_directory / "orders.xlsx"

    @property
    def inventory_file(self) -> Path:
        return self.export_directory / "inventory.xlsx"

    def _ensure_export_dir(self) -> None:
        if not self.export_directory.exists():
            self.export_directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created export directory: {self.export_directory}")

    @staticmethod
    def _order_row(order: dict[str, Any], export_time: str) -> dict[str, Any]:
        items = order.get("items") or []
        address = order.get("deliveryAddress") or {}
        return {
            "order_id": order.get("id"),
            "date_time": order.get("timestamp"),
            "order_type": order.get("orderType"),
            "status": order.get("status"),
            "table_number": order.get("tableNumber"),
            "customer_name": order.get("customerName"),
            "customer_phone": order.get("customerPhone"),
            "delivery_address": ", ".join(
                str(address[k]) for k in ("streetAddress", "city", "state", "zipCode") if address.get(k)
            ) or None,
            "staff_member": order.get("staffMember"),
            "items": "; ".join(f"{i.get('quantity')}x {i.get('name')}" for i in items),
            "item_count": sum(int(i.get("quantity") or 0) for i in items),
            "total": order.get("total"),
            "cancellation_reason": order.get("cancellationReason"),
            "migrated_to": order.get("migratedTo"),
            "exported_at": export_time,
        }

    @staticmethod
    def _inventory_row(item: dict[str, Any], export_time: str) -> dict[str, Any]:
        return {
            "item_id": item.get("id"),
            "name": item.get("name"),
            "category": item.get("category"),
            "current_stock": item.get("currentStock"),
            "unit": item.get("unit"),
            "minimum_stock": item.get("minimumStock"),
            "maximum_stock": item.get("maximumStock"),
            "status": item.get("status"),
            "unit_price": item.get("unitPrice"),
            "final_price": item.get("finalPrice"),
            "supplier": item.get("supplier"),
            "supplier_phone": item.get("supplierPhone"),
            "last_restocked": item.get("lastRestocked"),
            "expiry_date": item.get("expiryDate"),
            "exported_at": export_time,
        }

    def _export(self, target: Path, columns: list[str], rows: list[dict[str, Any]], label: str) -> dict[str, Any]:
        self._ensure_export_dir()
        result = {
            "success": False,
            "message": "",
            "rows": len(rows),
            "path": str(target),
            "exported_at": None,
        }

        try:
            with FileLock(str(target) + ".lock", timeout=self.lock_timeout):
                df = pd.DataFrame(rows, columns=columns)
                df.to_excel(str(target), index=False, engine="openpyxl")

            result["success"] = True
            result["message"] = f"{len(rows)} {label} exported"
            result["exported_at"] = rows[0]["exported_at"] if rows else datetime.now().isoformat()
            logger.info(f"📄 {len(rows)} {label} exported to {target.name}")

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout exporting {label}")

        except OSError as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting {label}")

        return result

    def export_orders(self, orders: Iterable[dict[str, Any]]) -> dict[str, Any]:
        export_time = datetime.now().isoformat()
        rows = [self._order_row(o, export_time) for o in orders]
        return self._export(self.orders_file, self.ORDER_COLUMNS, rows, "orders")

    def export_inventory(self, items: Iterable[dict[str, Any]]) -> dict[str, Any]:
        export_time = datetime.now().isoformat()
        rows = [self._inventory_row(i, export_time) for i in items]
        return self._export(self.inventory_file, self.INVENTORY_COLUMNS, rows, "inventory items")

    def read_sheet(self, path: Path) -> list[dict[str, Any]]:
        """Rows of an exported workbook, or [] if it was never written."""
        if not path.exists():
            return []
        df = pd.read_excel(path, engine="openpyxl")
        return df.to_dict("records")
