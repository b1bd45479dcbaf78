"""Expo push API client."""

import hashlib
from typing import Any

import httpx
import structlog
from opentelemetry.trace import SpanKind

from seatalert.core.config import settings
from seatalert.core.telemetry import service_span
from seatalert.exceptions import PushDeliveryError

logger = structlog.get_logger(__name__)

DEVICE_NOT_REGISTERED = "DeviceNotRegistered"


def _hash_token(token: str) -> str:
    """
    Hash a push token for logs and span attributes.

    Returns:
        First 12 characters of SHA256 hash in lowercase hex
    """
    return hashlib.sha256(token.encode()).hexdigest()[:12]


def is_expo_push_token(token: str) -> bool:
    """
    Check the shape of an Expo push token.

    Example:
        >>> is_expo_push_token("ExponentPushToken[abc123]")
        True
        >>> is_expo_push_token("abc123")
        False
    """
    return token.startswith(("ExponentPushToken[", "ExpoPushToken[")) and token.endswith("]")


def build_push_payload(token: str, title: str, body: str, data: dict[str, Any] | None) -> dict[str, Any]:
    """Build one Expo push message."""
    return {
        "to": token,
        "title": title,
        "body": body,
        "data": data or {},
        "sound": "default",
        "priority": "high",
    }


class ExpoPushClient:
    """Sends single push messages through the Expo push service."""

    def __init__(
        self,
        push_url: str | None = None,
        *,
        access_token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.push_url = push_url or settings.EXPO_PUSH_URL
        self.access_token = access_token if access_token is not None else settings.EXPO_ACCESS_TOKEN
        self.timeout = timeout if timeout is not None else settings.PUSH_TIMEOUT
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.push_url, json=payload, headers=self._headers(), timeout=self.timeout)
        async with httpx.AsyncClient() as client:
            return await client.post(self.push_url, json=payload, headers=self._headers(), timeout=self.timeout)

    async def send(self, token: str, title: str, body: str, data: dict[str, Any] | None = None) -> str | None:
        """
        Send one push message.

        Args:
            token: Expo push token of the recipient device
            title: Notification title
            body: Notification body
            data: Structured payload delivered to the app

        Returns:
            Expo ticket id, if the service returned one

        Raises:
            PushDeliveryError: On transport errors, non-2xx responses or an
                error ticket. device_not_registered is set when Expo reports
                the token as no longer valid.
        """
        token_hash = _hash_token(token)
        with service_span("push.send", "expo-push", kind=SpanKind.CLIENT) as span:
            span.set_attribute("push.recipient_hash", token_hash)
            span.set_attribute("push.title_length", len(title))

            if not is_expo_push_token(token):
                msg = f"Invalid Expo push token (hash {token_hash})"
                raise PushDeliveryError(msg, device_not_registered=True)

            try:
                response = await self._post(build_push_payload(token, title, body, data))
                response.raise_for_status()
                result = response.json()
            except httpx.HTTPError as e:
                msg = f"Expo push request failed: {e}"
                raise PushDeliveryError(msg) from e
            except ValueError as e:
                msg = f"Expo push response is not JSON: {e}"
                raise PushDeliveryError(msg) from e

            ticket = result.get("data") if isinstance(result, dict) else None
            if isinstance(ticket, list):
                ticket = ticket[0] if ticket else None
            if not isinstance(ticket, dict):
                msg = "Expo push response has no ticket"
                raise PushDeliveryError(msg)

            if ticket.get("status") == "error":
                details = ticket.get("details") or {}
                error_code = details.get("error") if isinstance(details, dict) else None
                msg = ticket.get("message") or f"Expo push error: {error_code or 'unknown'}"
                raise PushDeliveryError(msg, device_not_registered=error_code == DEVICE_NOT_REGISTERED)

            ticket_id = ticket.get("id")
            logger.debug("push_ticket_received", recipient_hash=token_hash, ticket_id=ticket_id)
            return ticket_id
