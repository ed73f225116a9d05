import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Deadline:
    """Absolute point in monotonic time by which a request must finish."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at


def remaining_or_none(deadline: Optional[Deadline]) -> Optional[float]:
    # None means "no limit" to asyncio.wait_for
    return None if deadline is None else deadline.remaining()
