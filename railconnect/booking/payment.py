from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import enum
import logging
from urllib.parse import urlencode

LOGGER = logging.getLogger(__name__)

UPI_PAYEE = "railconnect@upi"
UPI_PAYEE_NAME = "RailConnect"


class PaymentMethod(str, enum.Enum):
    QR = "QR"
    UPI = "UPI"
    CARD = "CARD"


@dataclass(slots=True, frozen=True)
class PaymentReceipt:
    amount: int
    method: PaymentMethod
    paid_at: datetime


class PaymentSimulator:
    """Stand-in for a payment gateway: waits a fixed delay, then succeeds.

    There is no failure path and the method does not change the outcome.
    """

    def __init__(self, delay_seconds: float = 2.5) -> None:
        self._delay_seconds = delay_seconds
        self.processing = False

    async def pay(self, amount: int, method: PaymentMethod = PaymentMethod.QR) -> PaymentReceipt:
        method = PaymentMethod(method)
        self.processing = True
        LOGGER.info("Processing %s payment of %s", method.value, amount)
        try:
            await asyncio.sleep(self._delay_seconds)
        finally:
            self.processing = False
        return PaymentReceipt(amount=amount, method=method, paid_at=datetime.now(timezone.utc))


def upi_payment_uri(amount: int, currency: str = "INR") -> str:
    """Payload encoded into the payment QR code."""

    query = urlencode({"pa": UPI_PAYEE, "pn": UPI_PAYEE_NAME, "am": amount, "cu": currency}, safe="@")
    return f"upi://pay?{query}"
