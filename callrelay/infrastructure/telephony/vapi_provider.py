"""Vapi telephony provider implementation."""

import logging
from typing import Any

import httpx

from callrelay.infrastructure.telephony.base import (
    CallControlProtocol,
    OutboundCallProviderProtocol,
    OutboundCallResult,
    TelephonyError,
)

logger = logging.getLogger(__name__)

VAPI_API_BASE = "https://api.vapi.ai"


class VapiVoiceProvider(OutboundCallProviderProtocol, CallControlProtocol):
    """Vapi provider for outbound assistant calls and live-call control."""

    provider_name = "vapi"

    def __init__(
        self,
        api_key: str,
        assistant_id: str | None = None,
        phone_number_id: str | None = None,
        base_url: str = VAPI_API_BASE,
        timeout: float = 30.0,
    ) -> None:
        """Initialize Vapi client.

        Args:
            api_key: Vapi private API key
            assistant_id: Assistant that handles outbound calls
            phone_number_id: Vapi phone number to call from (looked up if omitted)
            base_url: Vapi API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.assistant_id = assistant_id
        self.phone_number_id = phone_number_id
        self.base_url = base_url
        self.timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Create HTTP client with auth headers."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )

    async def _resolve_phone_number_id(self, client: httpx.AsyncClient) -> str | None:
        """Use the configured phone number, else the first one on the account."""
        if self.phone_number_id:
            return self.phone_number_id

        response = await client.get("/phone-number")
        if response.status_code != 200:
            logger.warning(f"Vapi phone number lookup failed: {response.status_code}")
            return None

        numbers = response.json()
        if isinstance(numbers, list) and numbers:
            return numbers[0].get("id")
        return None

    async def place_call(
        self,
        to: str,
        first_message: str,
        system_prompt: str,
    ) -> OutboundCallResult:
        """Place an outbound call via Vapi's /call endpoint.

        Args:
            to: Recipient phone number (E.164 format)
            first_message: Assistant's opening line
            system_prompt: System prompt for this call

        Returns:
            OutboundCallResult with the Vapi call id
        """
        try:
            async with self._get_client() as client:
                phone_number_id = await self._resolve_phone_number_id(client)
                if not phone_number_id:
                    raise TelephonyError("No Vapi phone number available for outbound calls", self.provider_name)

                payload: dict[str, Any] = {
                    "customer": {"number": to},
                    "phoneNumberId": phone_number_id,
                    "assistantOverrides": {
                        "firstMessage": first_message,
                        "model": {
                            "provider": "openai",
                            "model": "gpt-4o",
                            "messages": [{"role": "system", "content": system_prompt}],
                        },
                    },
                }
                if self.assistant_id:
                    payload["assistantId"] = self.assistant_id

                response = await client.post("/call", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error placing Vapi call: {e}")
            raise TelephonyError(f"HTTP error placing call: {e}", self.provider_name) from e

        if response.status_code not in (200, 201):
            logger.error(
                f"Vapi call placement failed: {response.status_code}",
                extra={"status_code": response.status_code, "response_text": response.text[:500]},
            )
            raise TelephonyError(
                f"Failed to place call: {response.status_code} - {response.text[:200]}",
                self.provider_name,
                status_code=response.status_code,
            )

        data = response.json()
        call_id = data.get("id")
        if not call_id:
            raise TelephonyError("Vapi returned no call id", self.provider_name)

        return OutboundCallResult(
            call_id=call_id,
            provider=self.provider_name,
            to=to,
            raw_response=data,
        )

    async def say(self, control_reference: str, text: str) -> None:
        """Inject a system message into a live call through its control URL.

        The assistant is told to speak the text immediately; the URL itself is
        the capability, so no API key is sent.

        Args:
            control_reference: The call's monitor.controlUrl
            text: Text the assistant should say to the customer
        """
        payload = {
            "type": "add-message",
            "message": {
                "role": "system",
                "content": f"Say this to the customer now: {text}",
            },
            "triggerResponseEnabled": True,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    control_reference,
                    headers={"Content-Type": "application/json"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"HTTP error sending Vapi control message: {e}")
            raise TelephonyError(f"HTTP error sending control message: {e}", self.provider_name) from e

        if response.status_code not in (200, 201, 202, 204):
            logger.error(
                f"Vapi control message rejected: {response.status_code}",
                extra={"status_code": response.status_code, "response_text": response.text[:500]},
            )
            raise TelephonyError(
                f"Control message rejected: {response.status_code} - {response.text[:200]}",
                self.provider_name,
                status_code=response.status_code,
            )
