from abc import ABC, abstractmethod

class IChargeService(ABC):
    @abstractmethod
    async def charge(self, payment_token: str, amount_cents: int) -> None:
        """Charge ``amount_cents``. A negative amount refunds that magnitude.

        Raises on any failure.
        """

    async def aclose(self) -> None:
        pass
