from abc import ABC, abstractmethod
from typing import List

from orderup.domain.models import Order, OrderStatus, StatusFilter

class IOrderRepository(ABC):
    """Authoritative storage of orders.

    Implementations hand out copies (or immutable values); nothing a caller
    does to a returned order may change what is stored.
    """

    @abstractmethod
    def insert_order(self, order: Order) -> str:
        """Store a new order, generating an id when ``order.id`` is empty.

        Raises OrderExistsError if the id is already taken.
        """

    @abstractmethod
    def get_order(self, order_id: str) -> Order:
        """Raises OrderNotFoundError if no order has this id."""

    @abstractmethod
    def list_orders(self, status_filter: StatusFilter = StatusFilter.ALL) -> List[Order]:
        pass

    @abstractmethod
    def set_order_status(self, order_id: str, status: OrderStatus) -> None:
        """Overwrite the status unconditionally. Transition rules live in the orchestrator."""

    def close(self) -> None:
        """Release connections or other resources held by the store."""
