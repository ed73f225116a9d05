"""
Error taxonomy shared by the stores, the orchestrator and the HTTP layer.

Every error carries a stable ``code`` that is part of the public API
contract; the message text is free-form.
"""


class OrderError(Exception):
    code = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code.replace("_", " "))
        self.message = str(self.args[0])


class OrderNotFoundError(OrderError):
    code = "order_not_found"


class OrderExistsError(OrderError):
    code = "order_already_exists"


class InvalidEmailError(OrderError):
    code = "invalid_email"


class InvalidLineItemsError(OrderError):
    code = "invalid_line_items"


class InvalidTotalError(OrderError):
    code = "invalid_total"


class InvalidStatusError(OrderError):
    code = "invalid_status"


class OrderNotEligibleError(OrderError):
    code = "order_not_eligible"


class ChargeServiceError(OrderError):
    code = "charge_service_error"


class InternalError(OrderError):
    code = "internal_error"


class InvalidInputError(OrderError):
    code = "invalid_json"
