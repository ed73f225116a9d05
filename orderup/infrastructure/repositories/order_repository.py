import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from orderup.domain.errors import InternalError, OrderExistsError, OrderNotFoundError
from orderup.domain.models import LineItem, Order, OrderStatus, StatusFilter, new_order_id
from orderup.infrastructure.database import OrderRow
from orderup.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)

class SqlOrderRepository(IOrderRepository):
    """Orders stored in the ``orders`` table. The database provides atomicity."""

    def __init__(self, session_factory: sessionmaker, engine: Optional[Engine] = None):
        self.session_factory = session_factory
        self.engine = engine

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()

    def insert_order(self, order: Order) -> str:
        if not order.id:
            order = order.with_id(new_order_id())

        session = self.session_factory()
        try:
            session.add(OrderRow(
                id=order.id,
                customer_email=order.customer_email,
                line_items=[item.model_dump() for item in order.line_items],
                status=int(order.status),
            ))
            session.commit()
            return order.id
        except IntegrityError:
            session.rollback()
            raise OrderExistsError(f"order {order.id} already exists") from None
        except SQLAlchemyError as e:
            logger.error("DB error inserting order order_id=%s: %s", order.id, e)
            session.rollback()
            raise InternalError(f"error inserting order: {e}") from e
        finally:
            session.close()

    def get_order(self, order_id: str) -> Order:
        session = self.session_factory()
        try:
            row = session.get(OrderRow, order_id)
        except SQLAlchemyError as e:
            logger.error("DB read error order_id=%s: %s", order_id, e)
            raise InternalError(f"error getting order: {e}") from e
        finally:
            session.close()

        if row is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        return _to_order(row)

    def list_orders(self, status_filter: StatusFilter = StatusFilter.ALL) -> List[Order]:
        query = select(OrderRow)
        if status_filter is not StatusFilter.ALL:
            query = query.where(OrderRow.status == int(status_filter))

        session = self.session_factory()
        try:
            rows = session.scalars(query).all()
        except SQLAlchemyError as e:
            logger.error("DB read error listing orders: %s", e)
            raise InternalError(f"error getting orders: {e}") from e
        finally:
            session.close()
        return [_to_order(row) for row in rows]

    def set_order_status(self, order_id: str, status: OrderStatus) -> None:
        session = self.session_factory()
        try:
            updated = session.execute(
                update(OrderRow).where(OrderRow.id == order_id).values(status=int(status))
            ).rowcount
            session.commit()
        except SQLAlchemyError as e:
            logger.error("DB error updating order order_id=%s: %s", order_id, e)
            session.rollback()
            raise InternalError(f"error updating order status: {e}") from e
        finally:
            session.close()

        if updated == 0:
            raise OrderNotFoundError(f"order {order_id} not found")


def _to_order(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        customer_email=row.customer_email,
        line_items=tuple(LineItem.model_validate(item) for item in row.line_items),
        status=OrderStatus(row.status),
    )
