import logging
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.concurrency import run_in_threadpool

from orderup.application.orchestrator import OrderOrchestrator
from orderup.core.context import Deadline
from orderup.domain.errors import (
    ChargeServiceError,
    InternalError,
    InvalidEmailError,
    InvalidInputError,
    InvalidLineItemsError,
    InvalidStatusError,
    InvalidTotalError,
    OrderError,
    OrderExistsError,
    OrderNotEligibleError,
    OrderNotFoundError,
)
from orderup.domain.models import LineItem, Order

router = APIRouter()
logger = logging.getLogger(__name__)

# Every error code maps to exactly one HTTP status.
ERROR_STATUS_CODES = {
    OrderNotFoundError.code: 404,
    OrderExistsError.code: 409,
    OrderNotEligibleError.code: 409,
    InvalidEmailError.code: 400,
    InvalidLineItemsError.code: 400,
    InvalidTotalError.code: 400,
    InvalidStatusError.code: 400,
    InvalidInputError.code: 400,
    ChargeServiceError.code: 500,
    InternalError.code: 500,
}


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateOrderRequest(_Body):
    id: str = ""
    customer_email: str = ""
    line_items: Optional[List[LineItem]] = None


class ChargeOrderRequest(_Body):
    card_token: str = ""


def _orchestrator(request: Request) -> OrderOrchestrator:
    return request.app.state.orchestrator


def _deadline(request: Request) -> Deadline:
    return Deadline.after(request.app.state.settings.REQUEST_TIMEOUT_SECONDS)


def _dump(order: Order) -> dict:
    return order.model_dump(mode="json", by_alias=True)


@router.get("/healthz")
def health_check():
    return Response(status_code=200)


@router.get("/orders")
def get_orders(request: Request, status: Optional[str] = None):
    orders = _orchestrator(request).list_orders(status)
    return {"orders": [_dump(o) for o in orders]}


@router.post("/orders", status_code=201)
def post_orders(request: Request, payload: CreateOrderRequest):
    order = _orchestrator(request).create_order(
        customer_email=payload.customer_email,
        line_items=payload.line_items or [],
        order_id=payload.id,
    )
    return {"order": _dump(order)}


@router.get("/orders/{order_id}")
def get_order(request: Request, order_id: str):
    return {"order": _dump(_orchestrator(request).get_order(order_id))}


@router.post("/orders/{order_id}/charge")
async def charge_order(request: Request, order_id: str, payload: Optional[ChargeOrderRequest] = None):
    orchestrator = _orchestrator(request)
    # An unknown order is reported before a missing body.
    await run_in_threadpool(orchestrator.get_order, order_id)
    if payload is None:
        raise InvalidInputError("error decoding body: missing body")

    charged = await orchestrator.charge_order(
        order_id, payload.card_token, deadline=_deadline(request)
    )
    return {"chargedCents": charged}


@router.post("/orders/{order_id}/cancel")
async def cancel_order(request: Request, order_id: str):
    result = await _orchestrator(request).cancel_order(order_id, deadline=_deadline(request))
    body = {"message": "order cancelled successfully", "orderId": result.order_id}
    if result.refunded_cents > 0:
        body["refundedCents"] = result.refunded_cents
    return body


# ---------------------------------------------------------
# ERROR HANDLING
# ---------------------------------------------------------

async def order_error_handler(request: Request, exc: OrderError):
    status_code = ERROR_STATUS_CODES.get(exc.code, 500)
    if status_code >= 500:
        logger.error("request failed code=%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=status_code, content={"code": exc.code, "message": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"code": InvalidInputError.code, "message": f"error decoding body: {details}"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderError, order_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
