"""
Push delivery transports.

The dispatcher treats a transport as opaque: it hands over the full token
set, a title, a body and the deep-link data, and relies on nothing in the
return value. Two drivers are provided: a console driver for local runs and
an Expo push driver that talks to the Expo push service over HTTP.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from app.core.config import load_config
from app.core.errors import DispatchError

logger = logging.getLogger(__name__)


class PushTransport(Protocol):
    driver: str

    async def send(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        ...


class ConsolePushTransport:
    driver = "console"

    async def send(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        # Simulate a send and keep nothing. Avoid printing raw tokens; the count is enough for local debugging
        print(f"[console-push] to={len(tokens)} device(s) title={title!r} body={body!r} data={data}")
        return {"data": [{"status": "ok"} for _ in tokens]}


class ExpoPushTransport:
    """Client for the Expo push notification service."""

    driver = "expo"

    def __init__(self, push_url: str, access_token: Optional[str] = None, timeout: float = 15.0):
        """
        Initialize the Expo transport.

        Args:
            push_url: Expo push endpoint
            access_token: Optional Expo access token for enhanced push security
            timeout: Request timeout in seconds
        """
        self.push_url = push_url
        self.access_token = access_token
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def send(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Send one alert to every token in a single request.

        Returns:
            Dict containing the Expo API response

        Raises:
            DispatchError: If the request fails or Expo rejects the whole batch
        """
        payload = {
            "to": list(tokens),
            "title": title,
            "body": body,
            "data": data,
            "sound": "default",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.push_url, headers=self._headers(), json=payload)
                response.raise_for_status()
                result = response.json()
        except httpx.TimeoutException as exc:
            raise DispatchError("Expo push request timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise DispatchError(f"Expo push HTTP error: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise DispatchError(f"Expo push error: {exc}") from exc

        if result.get("errors"):
            first = result["errors"][0]
            raise DispatchError(f"Expo push API error: {first.get('message', 'Unknown error')}")

        # Per-ticket failures (e.g. DeviceNotRegistered) do not fail the batch
        tickets = result.get("data") or []
        if isinstance(tickets, dict):
            tickets = [tickets]
        for ticket in tickets:
            if ticket.get("status") == "error":
                logger.warning(f"Expo push ticket error: {ticket.get('message')}")

        return result


def select_push_transport_from_env() -> PushTransport:
    config = load_config()
    driver = config.push_driver
    if driver == "console":
        return ConsolePushTransport()
    if driver == "expo":
        return ExpoPushTransport(
            push_url=config.expo_push_url,
            access_token=config.expo_access_token,
            timeout=config.push_timeout_seconds,
        )
    raise ValueError(f"Unsupported PUSH_DRIVER: {driver}")
