import logging
from typing import Dict, List

from orderup.domain.errors import OrderExistsError, OrderNotFoundError
from orderup.domain.models import Order, OrderStatus, StatusFilter, new_order_id
from orderup.infrastructure.rwlock import ReadWriteLock
from orderup.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)

class InMemoryOrderRepository(IOrderRepository):
    """Orders kept in a dict guarded by a reader/writer lock.

    Stored orders are frozen models, so handing them out directly cannot let
    a caller alter the stored record; status changes replace the value.
    """

    def __init__(self):
        self._lock = ReadWriteLock()
        self._orders: Dict[str, Order] = {}

    def insert_order(self, order: Order) -> str:
        if not order.id:
            order = order.with_id(new_order_id())

        with self._lock.write_locked():
            if order.id in self._orders:
                raise OrderExistsError(f"order {order.id} already exists")
            self._orders[order.id] = order

        logger.debug("inserted order order_id=%s", order.id)
        return order.id

    def get_order(self, order_id: str) -> Order:
        with self._lock.read_locked():
            order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        return order

    def list_orders(self, status_filter: StatusFilter = StatusFilter.ALL) -> List[Order]:
        with self._lock.read_locked():
            return [o for o in self._orders.values() if status_filter.matches(o.status)]

    def set_order_status(self, order_id: str, status: OrderStatus) -> None:
        with self._lock.write_locked():
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError(f"order {order_id} not found")
            self._orders[order_id] = order.with_status(status)
