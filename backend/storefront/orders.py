from __future__ import annotations
from typing import List, Optional

from .catalog import CatalogStore
from .logger import get_logger
from .models import Notification, Order, OrderItem, OrderRequest

logger = get_logger("orders")

NOTIFICATION_LIMIT = 20


class Cart:
    """Shopping cart for one session; items with the same product are merged"""

    def __init__(self, items: Optional[List[OrderItem]] = None):
        self.items: List[OrderItem] = []
        for it in items or []:
            self.add(it)

    @staticmethod
    def _key(item: OrderItem) -> str:
        return item.product_id or item.product_name

    def _index(self, key: str) -> int:
        for i, it in enumerate(self.items):
            if self._key(it) == key:
                return i
        return -1

    def add(self, item: OrderItem) -> None:
        i = self._index(self._key(item))
        if i >= 0:
            current = self.items[i]
            self.items[i] = current.model_copy(update={"quantity": current.quantity + item.quantity})
        else:
            self.items.append(item)

    def update(self, key: str, quantity: int) -> None:
        i = self._index(key)
        if i < 0:
            return
        if quantity <= 0:
            del self.items[i]
        else:
            self.items[i] = self.items[i].model_copy(update={"quantity": quantity})

    def remove(self, key: str) -> None:
        self.update(key, 0)

    def clear(self) -> None:
        self.items = []

    @property
    def total(self) -> float:
        return sum(it.price * it.quantity for it in self.items)


def place_order(store: CatalogStore, req: OrderRequest) -> Order:
    """Create the order, its items and an admin notification

    The notification is best effort: if it fails the order still stands
    """
    cart = Cart(req.items)
    order = Order(
        id="",
        customer_name=req.customer_name,
        customer_email=req.customer_email,
        customer_phone=req.customer_phone,
        total_amount=cart.total,
    )
    order.id = store.insert_order(order.model_dump(exclude={"id"}))
    items = [
        {
            "order_id": order.id,
            "product_id": it.product_id,
            "product_name": it.product_name,
            "quantity": it.quantity,
            "price": it.price,
        }
        for it in cart.items
    ]
    store.insert_order_items(items)
    try:
        store.insert_notification({
            "type": "new_order",
            "payload": {
                "orderId": order.id,
                "customer_name": order.customer_name,
                "customer_email": order.customer_email,
                "total_amount": order.total_amount,
                "items": items,
            },
        })
    except Exception as e:
        logger.error("Could not create notification for order %s: %s", order.id, e)
    logger.info("Order %s placed, total %.2f", order.id, order.total_amount)
    return order


def list_notifications(store: CatalogStore, limit: int = NOTIFICATION_LIMIT) -> List[Notification]:
    out = []
    for r in store.list_notification_rows(limit):
        out.append(Notification(
            id=str(r.get("id", "")),
            type=str(r.get("type", "")),
            payload=r.get("payload") or {},
            read=bool(r.get("read")),
            created_at=str(r["created_at"]) if r.get("created_at") else None,
        ))
    return out


def mark_notification_read(store: CatalogStore, nid: str) -> None:
    store.mark_notification_read(nid)
