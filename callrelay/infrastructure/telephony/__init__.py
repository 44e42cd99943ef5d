"""Telephony provider infrastructure."""

from callrelay.infrastructure.telephony.base import (
    CallControlProtocol,
    OutboundCallProviderProtocol,
    OutboundCallResult,
    TelephonyError,
)
from callrelay.infrastructure.telephony.factory import TelephonyProviderFactory

__all__ = [
    "CallControlProtocol",
    "OutboundCallProviderProtocol",
    "OutboundCallResult",
    "TelephonyError",
    "TelephonyProviderFactory",
]
