"""Telephony provider factory."""

import logging

from callrelay.infrastructure.telephony.base import CallControlProtocol, OutboundCallProviderProtocol
from callrelay.infrastructure.telephony.telnyx_provider import TelnyxVoiceProvider
from callrelay.infrastructure.telephony.vapi_provider import VapiVoiceProvider
from callrelay.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class TelephonyProviderFactory:
    """Factory for creating telephony provider instances from settings."""

    def __init__(self, config: Settings | None = None) -> None:
        """Initialize factory.

        Args:
            config: Settings to build providers from (defaults to app settings)
        """
        self.config = config or default_settings

    def _vapi(self) -> VapiVoiceProvider | None:
        if not self.config.vapi_api_key:
            logger.warning("Vapi provider requested but VAPI_API_KEY is not set")
            return None
        return VapiVoiceProvider(
            api_key=self.config.vapi_api_key,
            assistant_id=self.config.vapi_assistant_id,
            phone_number_id=self.config.vapi_phone_number_id,
            base_url=self.config.vapi_base_url,
            timeout=self.config.provider_request_timeout_seconds,
        )

    def _telnyx(self) -> TelnyxVoiceProvider | None:
        if not self.config.telnyx_api_key:
            logger.warning("Telnyx provider requested but TELNYX_API_KEY is not set")
            return None
        webhook_url = None
        if self.config.public_base_url:
            webhook_url = f"{self.config.public_base_url.rstrip('/')}{self.config.api_v1_prefix}/telnyx/webhook"
        return TelnyxVoiceProvider(
            api_key=self.config.telnyx_api_key,
            connection_id=self.config.telnyx_connection_id,
            from_number=self.config.telnyx_phone_number,
            webhook_url=webhook_url,
            api_base=self.config.telnyx_api_base,
            timeout=self.config.provider_request_timeout_seconds,
        )

    def get_outbound_provider(self) -> OutboundCallProviderProtocol | None:
        """Get the provider used to place escalation calls.

        Returns:
            Provider instance or None if not configured
        """
        if self.config.escalation_provider == "telnyx":
            return self._telnyx()
        return self._vapi()

    def get_control_channel(self, provider: str) -> CallControlProtocol | None:
        """Get the control channel for a live call on the given provider.

        Args:
            provider: Provider that owns the live call ("vapi" or "telnyx")

        Returns:
            Control channel or None if the provider is unknown or unconfigured
        """
        if provider == "telnyx":
            return self._telnyx()
        if provider == "vapi":
            # The control URL is the capability; no API key is needed to use it
            return VapiVoiceProvider(
                api_key=self.config.vapi_api_key or "",
                base_url=self.config.vapi_base_url,
                timeout=self.config.provider_request_timeout_seconds,
            )
        logger.warning(f"No control channel for provider: {provider}")
        return None
