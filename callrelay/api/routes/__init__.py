"""API routes."""

from fastapi import APIRouter

from callrelay.api.routes import calls, escalations, telnyx_webhooks, vapi_webhooks

api_router = APIRouter()

# Provider webhooks and assistant tools
api_router.include_router(vapi_webhooks.router, prefix="/vapi", tags=["vapi"])
api_router.include_router(telnyx_webhooks.router, prefix="/telnyx", tags=["telnyx"])

# Operator inspection
api_router.include_router(calls.router, prefix="/calls", tags=["calls"])
api_router.include_router(escalations.router, prefix="/escalations", tags=["escalations"])
