"""Base telephony provider interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class TelephonyError(Exception):
    """Raised when a provider API call fails or returns an unusable response."""

    def __init__(self, message: str, provider: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


@dataclass
class OutboundCallResult:
    """Result of placing an outbound call."""

    call_id: str
    provider: str
    to: str
    raw_response: dict | None = None


class OutboundCallProviderProtocol(ABC):
    """Protocol for providers that can place an outbound call to a human."""

    provider_name: str

    @abstractmethod
    async def place_call(
        self,
        to: str,
        first_message: str,
        system_prompt: str,
    ) -> OutboundCallResult:
        """Place an outbound call handled by an AI assistant.

        Args:
            to: Recipient phone number (E.164 format)
            first_message: What the assistant says when the call connects
            system_prompt: Instructions for the assistant on this call

        Returns:
            OutboundCallResult with the provider's call id

        Raises:
            TelephonyError: If the call could not be placed
        """
        pass


class CallControlProtocol(ABC):
    """Protocol for delivering a command into a call that is already live."""

    provider_name: str

    @abstractmethod
    async def say(self, control_reference: str, text: str) -> None:
        """Make the live call speak the given text to the customer.

        Args:
            control_reference: Provider capability addressing the live call
                (Vapi control URL, Telnyx call control id)
            text: Text to deliver

        Raises:
            TelephonyError: If the command was not accepted
        """
        pass
