"""Telnyx telephony provider implementation."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from callrelay.infrastructure.telephony.base import (
    CallControlProtocol,
    OutboundCallProviderProtocol,
    OutboundCallResult,
    TelephonyError,
)

logger = logging.getLogger(__name__)

TELNYX_API_BASE = "https://api.telnyx.com/v2"

# System prompts ride in a SIP header, which Telnyx caps in size and which
# cannot carry raw CR/LF, so the prompt is percent-encoded
MAX_SIP_HEADER_PROMPT = 2000


class TelnyxVoiceProvider(OutboundCallProviderProtocol, CallControlProtocol):
    """Telnyx Call Control provider for outbound calls and live-call speech."""

    provider_name = "telnyx"

    def __init__(
        self,
        api_key: str,
        connection_id: str | None = None,
        from_number: str | None = None,
        webhook_url: str | None = None,
        api_base: str = TELNYX_API_BASE,
        timeout: float = 30.0,
    ) -> None:
        """Initialize Telnyx Voice client.

        Args:
            api_key: Telnyx API v2 key
            connection_id: Call Control application ID
            from_number: Caller ID for outbound calls (E.164 format)
            webhook_url: Where Telnyx should send call events
            api_base: Telnyx API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.connection_id = connection_id
        self.from_number = from_number
        self.webhook_url = webhook_url
        self.api_base = api_base
        self.timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Create HTTP client with auth headers."""
        return httpx.AsyncClient(
            base_url=self.api_base,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self._get_client() as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Telnyx {path}: {e}")
            raise TelephonyError(f"HTTP error calling {path}: {e}", self.provider_name) from e

        if response.status_code >= 300:
            logger.error(
                f"Telnyx {path} failed: {response.status_code}",
                extra={"status_code": response.status_code, "response_text": response.text[:500]},
            )
            raise TelephonyError(
                f"Telnyx {path} failed: {response.status_code} - {response.text[:200]}",
                self.provider_name,
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()

    async def place_call(
        self,
        to: str,
        first_message: str,
        system_prompt: str,
    ) -> OutboundCallResult:
        """Dial a number through the Call Control application.

        Args:
            to: Recipient phone number (E.164 format)
            first_message: Opening line, passed to the assistant as a custom header
            system_prompt: System prompt, passed as a SIP header

        Returns:
            OutboundCallResult with the call_control_id as call id
        """
        if not self.connection_id or not self.from_number:
            raise TelephonyError(
                "Telnyx connection_id and from_number are required for outbound calls",
                self.provider_name,
            )

        payload: dict[str, Any] = {
            "connection_id": self.connection_id,
            "to": to,
            "from": self.from_number,
            "custom_headers": [
                {"name": "X-Call-Type", "value": "escalation"},
                {"name": "X-First-Message", "value": first_message},
            ],
            "sip_headers": [
                {"name": "X-System-Prompt", "value": quote(system_prompt[:MAX_SIP_HEADER_PROMPT], safe="")},
            ],
        }
        if self.webhook_url:
            payload["webhook_url"] = self.webhook_url

        data = await self._post("/calls", payload)
        call_control_id = (data.get("data") or {}).get("call_control_id")
        if not call_control_id:
            raise TelephonyError("Telnyx returned no call_control_id", self.provider_name)

        return OutboundCallResult(
            call_id=call_control_id,
            provider=self.provider_name,
            to=to,
            raw_response=data,
        )

    async def say(self, control_reference: str, text: str) -> None:
        """Speak text into a live call.

        Args:
            control_reference: The call's call_control_id
            text: Text to speak
        """
        await self._post(
            f"/calls/{control_reference}/actions/speak",
            {
                "payload": text,
                "voice": "female",
                "language": "en-US",
            },
        )
