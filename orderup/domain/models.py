import secrets
from enum import IntEnum
from typing import Annotated, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from orderup.domain.errors import InvalidStatusError

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

# Amounts and quantities travel as signed 64-bit integers.
Int64 = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]


class OrderStatus(IntEnum):
    # Ordinals are part of the wire format.
    PENDING = 0
    CHARGED = 1
    FULFILLED = 2
    CANCELLED = 3


class StatusFilter(IntEnum):
    """Query filter for listing orders. Never persisted."""

    ALL = -1
    PENDING = 0
    CHARGED = 1
    FULFILLED = 2
    CANCELLED = 3

    def matches(self, status: OrderStatus) -> bool:
        return self is StatusFilter.ALL or int(self) == int(status)

    @classmethod
    def parse(cls, token: str | None) -> "StatusFilter":
        """Resolve a ``?status=`` token. An empty token means every order."""
        if not token:
            return cls.ALL
        try:
            return _STATUS_TOKENS[token]
        except KeyError:
            raise InvalidStatusError(f"unknown value for status: {token}") from None


_STATUS_TOKENS = {
    "pending": StatusFilter.PENDING,
    "charged": StatusFilter.CHARGED,
    "fulfilled": StatusFilter.FULFILLED,
    "cancelled": StatusFilter.CANCELLED,
}


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class LineItem(_WireModel):
    description: str = ""
    # Negative prices are discounts.
    unit_price_cents: Int64
    quantity: Int64

    @property
    def subtotal_cents(self) -> int:
        return self.unit_price_cents * self.quantity


class Order(_WireModel):
    id: str = ""
    customer_email: str
    line_items: Tuple[LineItem, ...] = Field(min_length=1)
    status: OrderStatus = OrderStatus.PENDING

    @property
    def total_cents(self) -> int:
        return sum(item.subtotal_cents for item in self.line_items)

    def with_status(self, status: OrderStatus) -> "Order":
        return self.model_copy(update={"status": status})

    def with_id(self, order_id: str) -> "Order":
        return self.model_copy(update={"id": order_id})


def new_order_id() -> str:
    """128 random bits, hex encoded."""
    return secrets.token_hex(16)
