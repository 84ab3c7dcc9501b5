"""
Order repository.

Every successful order mutation triggers an analytics refresh. A failed
refresh never undoes the order change; it comes back as ``analytics_warning``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from restohub.core.exceptions import NotFoundError, ValidationError
from restohub.schemas import OrderCancel, OrderCreate, OrderStatus
from restohub.services.data.records import RecordBatch, new_id, now_iso, parse_model

logger = logging.getLogger(__name__)

# Forward-only kitchen flow; cancellation is allowed from any non-terminal state
ORDER_FLOW = [
    OrderStatus.PENDING.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
    OrderStatus.DELIVERED.value,
]
TERMINAL_STATUSES = {OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value}


def can_transition(current: str, new: str) -> bool:
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new == OrderStatus.CANCELLED.value:
        return True
    if current not in ORDER_FLOW or new not in ORDER_FLOW:
        return False
    return ORDER_FLOW.index(new) > ORDER_FLOW.index(current)


@dataclass
class OrderMutationResult:
    order: Optional[dict[str, Any]]
    analytics_warning: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": True, "order": self.order}
        if self.analytics_warning:
            payload["analyticsWarning"] = self.analytics_warning
        return payload


class OrderRepository:
    collection = "orders"

    def __init__(self, data):
        self.data = data

    async def list_orders(self, status: Optional[str] = None) -> list[dict[str, Any]]:
        orders = await self.data.records(self.collection)
        if status:
            orders = [o for o in orders if o.get("status") == status]
        return orders

    async def get_order(self, order_id: str) -> dict[str, Any]:
        for order in await self.data.records(self.collection):
            if str(order.get("id")) == str(order_id):
                return order
        raise NotFoundError(f"Order '{order_id}' not found")

    async def _commit(self, apply) -> OrderMutationResult:
        result = await self.data.write_collection(self.collection, apply)
        warning = await self.data.after_order_mutation()
        return OrderMutationResult(order=result.value, analytics_warning=warning)

    async def add_order(self, payload: Any) -> OrderMutationResult:
        """
        Validate and append a new order.

        The total must match the item lines; it is filled in when omitted.
        """
        order = parse_model(OrderCreate, payload)
        record = order.to_record()
        record["id"] = order.id or new_id("order")
        record["timestamp"] = record.get("timestamp") or datetime.now().astimezone().isoformat()

        result = await self._commit(lambda batch: batch.add(record))
        logger.info(f"🧾 Order {record['id']} added: ₹{record['total']} ({len(record['items'])} items)")
        return result

    async def update_status(self, order_id: str, status: Any) -> OrderMutationResult:
        try:
            new_status = OrderStatus(status).value
        except ValueError:
            raise ValidationError(
                f"Invalid status '{status}'",
                detail={"allowed": [s.value for s in OrderStatus]},
            )

        def apply(batch: RecordBatch):
            current = batch.require(order_id)
            old_status = current.get("status", OrderStatus.PENDING.value)
            if not can_transition(old_status, new_status):
                raise ValidationError(
                    f"Order '{order_id}' cannot move from {old_status} to {new_status}"
                )
            return batch.update(order_id, lambda o: {**o, "status": new_status})

        result = await self._commit(apply)
        logger.info(f"Order {order_id} status updated to: {new_status}")
        return result

    async def cancel_order(self, order_id: str, reason: str, cancelled_by: str) -> OrderMutationResult:
        cancel = parse_model(OrderCancel, {"cancellationReason": reason, "cancelledBy": cancelled_by})

        def apply(batch: RecordBatch):
            current = batch.require(order_id)
            if not can_transition(current.get("status", OrderStatus.PENDING.value), OrderStatus.CANCELLED.value):
                raise ValidationError(
                    f"Order '{order_id}' is already {current.get('status')} and cannot be cancelled"
                )
            return batch.update(order_id, lambda o: {
                **o,
                "status": OrderStatus.CANCELLED.value,
                "cancellationReason": cancel.cancellation_reason,
                "cancelledBy": cancel.cancelled_by,
                "cancelledAt": now_iso(),
            })

        result = await self._commit(apply)
        logger.info(f"Order {order_id} cancelled by {cancelled_by}: {reason}")
        return result

    async def delete_order(self, order_id: str) -> OrderMutationResult:
        def apply(batch: RecordBatch):
            order = batch.require(order_id)
            batch.delete(order_id)
            return order

        return await self._commit(apply)

    async def clear(self) -> OrderMutationResult:
        """Remove every order; analytics fall back to the empty snapshot."""
        def apply(batch: RecordBatch):
            for order in list(batch.records):
                batch.delete(order.get("id"))

        result = await self._commit(apply)
        logger.info("All orders cleared")
        return result

    async def mark_migrated(self, order_id: str, profile_id: str) -> bool:
        """
        Link an order to a customer profile.

        Returns False when the order is already linked (to any profile).
        """
        def apply(batch: RecordBatch):
            order = batch.require(order_id)
            if order.get("migratedTo"):
                return False
            batch.update(order_id, lambda o: {**o, "migratedTo": profile_id, "migratedAt": now_iso()})
            return True

        result = await self.data.write_collection(self.collection, apply)
        return result.value
