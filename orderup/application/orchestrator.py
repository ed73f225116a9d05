import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional
from weakref import WeakValueDictionary

from starlette.concurrency import run_in_threadpool

from orderup.core.context import Deadline, remaining_or_none
from orderup.domain.errors import (
    ChargeServiceError,
    InternalError,
    InvalidEmailError,
    InvalidLineItemsError,
    InvalidTotalError,
    OrderError,
    OrderNotEligibleError,
)
from orderup.domain.models import INT64_MAX, LineItem, Order, OrderStatus, StatusFilter
from orderup.interfaces.IChargeService import IChargeService
from orderup.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)

# The refund call has no card token to send; the charge service is expected
# to resolve the refund target itself.
REFUND_TOKEN = ""


@dataclass(frozen=True)
class CancelResult:
    order_id: str
    refunded_cents: int
    was_refunded: bool


class OrderOrchestrator:
    """Drives the order state machine.

        PENDING --charge--> CHARGED
        PENDING --cancel--> CANCELLED
        CHARGED --cancel (refund)--> CANCELLED

    CHARGED -> FULFILLED belongs to the fulfillment service and is not
    performed here. Anything else is rejected with OrderNotEligibleError.
    """

    def __init__(self, order_repo: IOrderRepository, charge_service: IChargeService):
        self.order_repo = order_repo
        self.charge_service = charge_service
        # One lock per order id while someone is using it.
        self._order_locks: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()

    # --- QUERIES ---

    def get_order(self, order_id: str) -> Order:
        return self.order_repo.get_order(order_id)

    def list_orders(self, status_token: Optional[str] = None) -> List[Order]:
        status_filter = StatusFilter.parse(status_token)
        orders = self.order_repo.list_orders(status_filter)
        logger.info("listed orders status_filter=%s count=%d", status_filter.name, len(orders))
        return orders

    # --- COMMANDS ---

    def create_order(self, customer_email: str, line_items: Iterable[LineItem], order_id: str = "") -> Order:
        line_items = tuple(line_items)
        if "@" not in (customer_email or ""):
            raise InvalidEmailError("invalid customerEmail")
        if not line_items:
            raise InvalidLineItemsError("an order must contain at least one line item")
        if any(item.quantity <= 0 for item in line_items):
            raise InvalidLineItemsError("line item quantity must be greater than 0")

        order = Order(
            id=order_id,
            customer_email=customer_email,
            line_items=line_items,
            status=OrderStatus.PENDING,
        )
        if order.total_cents < 0:
            raise InvalidTotalError("an order's total cannot be less than 0")
        if order.total_cents > INT64_MAX:
            raise InvalidTotalError("an order's total is too large to charge")

        new_id = self.order_repo.insert_order(order)
        logger.info("created order order_id=%s total_cents=%d", new_id, order.total_cents)
        return order.with_id(new_id)

    async def charge_order(self, order_id: str, payment_token: str, deadline: Optional[Deadline] = None) -> int:
        """Charge a pending order's total and mark it CHARGED. Returns the charged amount."""
        async with self._lock_for(order_id):
            # Re-read under the lock; a status seen earlier may be stale.
            order = await run_in_threadpool(self.order_repo.get_order, order_id)
            if order.status != OrderStatus.PENDING:
                logger.warning("order not eligible for charging order_id=%s status=%s",
                               order_id, order.status.name)
                raise OrderNotEligibleError("order ineligible for charging")

            amount = order.total_cents
            await self._call_charge_service(payment_token, amount, deadline)

            # Not atomic with the charge above: a failure here leaves the
            # customer charged while the order still reads PENDING.
            try:
                await run_in_threadpool(self.order_repo.set_order_status, order_id, OrderStatus.CHARGED)
            except OrderError as e:
                logger.error("order charged but status not saved order_id=%s amount_cents=%d: %s",
                             order_id, amount, e)
                raise InternalError(f"error updating order to charged: {e}") from e

        logger.info("charged order order_id=%s amount_cents=%d", order_id, amount)
        return amount

    async def cancel_order(self, order_id: str, deadline: Optional[Deadline] = None) -> CancelResult:
        """Cancel a pending or charged order, refunding it first if it was charged."""
        async with self._lock_for(order_id):
            order = await run_in_threadpool(self.order_repo.get_order, order_id)
            if order.status not in (OrderStatus.PENDING, OrderStatus.CHARGED):
                logger.warning("order not eligible for cancellation order_id=%s status=%s",
                               order_id, order.status.name)
                raise OrderNotEligibleError(
                    "order cannot be cancelled - only pending or charged orders can be cancelled")

            refunded_cents = 0
            was_refunded = False
            if order.status == OrderStatus.CHARGED:
                # A failed refund aborts the cancellation; the order stays CHARGED.
                await self._call_charge_service(REFUND_TOKEN, -order.total_cents, deadline)
                refunded_cents = order.total_cents
                was_refunded = True
                logger.info("refunded order order_id=%s refunded_cents=%d", order_id, refunded_cents)

            try:
                await run_in_threadpool(self.order_repo.set_order_status, order_id, OrderStatus.CANCELLED)
            except OrderError as e:
                logger.error("failed to save cancelled status order_id=%s refunded=%s: %s",
                             order_id, was_refunded, e)
                raise InternalError(f"error cancelling order: {e}") from e

        logger.info("cancelled order order_id=%s", order_id)
        return CancelResult(order_id=order_id, refunded_cents=refunded_cents, was_refunded=was_refunded)

    # --- HELPERS ---

    def _lock_for(self, order_id: str) -> asyncio.Lock:
        lock = self._order_locks.get(order_id)
        if lock is None:
            lock = asyncio.Lock()
            self._order_locks[order_id] = lock
        return lock

    async def _call_charge_service(self, payment_token: str, amount_cents: int,
                                   deadline: Optional[Deadline]) -> None:
        if deadline is not None and deadline.expired:
            raise ChargeServiceError("deadline exceeded before calling charge service")
        try:
            await asyncio.wait_for(
                self.charge_service.charge(payment_token, amount_cents),
                timeout=remaining_or_none(deadline),
            )
        except ChargeServiceError:
            raise
        except asyncio.TimeoutError:
            raise ChargeServiceError("charge service call exceeded the request deadline") from None
        except Exception as e:
            raise ChargeServiceError(str(e) or e.__class__.__name__) from e
