from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from mailotp.domain.errors import DeliveryFailed, DeliveryUncertain
from mailotp.domain.ports.email_port import EmailPort

logger = logging.getLogger(__name__)


class HttpSmtpEmailAdapter(EmailPort):
    """
    Hands messages to an HTTP mail relay (`POST <base_url><send_path>`).

    The relay is expected to dedupe on the `Idempotency-Key` header, which
    is what makes a retry after DeliveryUncertain safe.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        send_path: str = "/send",
        sender: str = "",
    ) -> None:
        self._url = f"{base_url.rstrip('/')}/{send_path.lstrip('/')}"
        self._sender = sender
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _payload(self, to: str, subject: str, body: str) -> dict[str, Any]:
        payload: dict[str, Any] = {"to": to, "subject": subject, "body": body}
        if self._sender:
            payload["from"] = self._sender
        return payload

    async def send(
        self,
        *,
        to: str,
        subject: str,
        body: str,
        idempotency_key: str | None = None,
    ) -> None:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        try:
            resp = await self._client.post(
                self._url, json=self._payload(to, subject, body), headers=headers
            )
        except httpx.TimeoutException as e:
            # the relay may have queued the message before the deadline
            raise DeliveryUncertain(f"SMTP timeout: {e!r}") from e
        except httpx.HTTPError as e:
            raise DeliveryFailed(f"SMTP HTTP error: {e!r}") from e

        if not resp.is_success:
            raise DeliveryFailed(f"SMTP responded {resp.status_code}: {resp.text[:200]}")
        logger.debug(
            "email accepted by relay",
            extra={"status_code": resp.status_code, "idempotency_key": idempotency_key},
        )

    async def aclose(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
