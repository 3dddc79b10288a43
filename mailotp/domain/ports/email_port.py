from __future__ import annotations

from typing import Protocol


class EmailPort(Protocol):
    async def send(
        self,
        *,
        to: str,
        subject: str,
        body: str,
        idempotency_key: str | None = None,
    ) -> None:
        """
        Send an email.

        Raises DeliveryFailed when the message was certainly not accepted and
        DeliveryUncertain when the provider did not answer in time.
        """
