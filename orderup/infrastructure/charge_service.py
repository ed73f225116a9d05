import logging
from typing import Optional

import httpx

from orderup.domain.errors import ChargeServiceError
from orderup.interfaces.IChargeService import IChargeService

logger = logging.getLogger(__name__)

class HttpChargeService(IChargeService):
    """Client for the payment gateway's ``POST /charge`` endpoint.

    Refunds are charges with a negative amount. No retries: the first
    failure is reported to the caller.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def charge(self, payment_token: str, amount_cents: int) -> None:
        logger.info("calling charge service amount_cents=%d", amount_cents)
        try:
            response = await self.client.post(
                "/charge",
                json={"cardToken": payment_token, "amountCents": amount_cents},
            )
        except httpx.HTTPError as e:
            logger.error("charge request failed: %s", e)
            raise ChargeServiceError(f"error making charge request: {e}") from e

        # /charge creates a charge, anything but 201 is a failure
        if response.status_code != httpx.codes.CREATED:
            logger.error("charge service rejected charge status_code=%d", response.status_code)
            raise ChargeServiceError(f"error charging: {response.status_code} {response.text}")

    async def aclose(self) -> None:
        await self.client.aclose()
