"""Call escalation and cross-provider session reconciliation service."""

__version__ = "0.1.0"
