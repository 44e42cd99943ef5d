"""Telnyx Call Control webhooks and AI assistant tool endpoint."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import ValidationError

from callrelay.api.deps import get_call_event_service, get_escalation_service
from callrelay.api.schemas.escalation import EscalateToHumanArgs, TelnyxToolResponse
from callrelay.domain.services.call_event_service import CallEventService
from callrelay.domain.services.escalation_service import (
    PLACEMENT_FAILED_MESSAGE,
    EscalationService,
    EscalationTrigger,
)
from callrelay.persistence.database import STORE_UNAVAILABLE_ERRORS

logger = logging.getLogger(__name__)

router = APIRouter()

PROVIDER = "telnyx"


async def _read_json(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Telnyx request body is not valid JSON")
        return {}
    return body if isinstance(body, dict) else {}


@router.post("/webhook")
async def telnyx_webhook(
    request: Request,
    service: Annotated[CallEventService, Depends(get_call_event_service)],
) -> dict[str, Any]:
    """Handle Telnyx Call Control events.

    Always acknowledges with 200 so Telnyx does not retry payloads we cannot
    use; a 503 asks for a retry when the database is unreachable.
    """
    body = await _read_json(request)
    data = body.get("data")
    event_type = data.get("event_type") if isinstance(data, dict) else None
    try:
        await service.handle_event(PROVIDER, body)
    except STORE_UNAVAILABLE_ERRORS as e:
        logger.error(
            f"Database unavailable for Telnyx webhook: {e}",
            extra={"event_type": event_type},
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Call store unavailable",
        )
    except Exception as e:
        logger.error(
            f"Error processing Telnyx webhook: {e}",
            extra={"event_type": event_type},
            exc_info=True,
        )

    return {"ok": True}


@router.post("/tools/escalate-to-human")
async def escalate_to_human(
    request: Request,
    service: Annotated[EscalationService, Depends(get_escalation_service)],
    x_telnyx_call_control_id: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    """Telnyx AI assistant tool: ask a human about an item while the caller holds.

    The primary call's call_control_id addresses it for the later speak
    command, so it doubles as the control reference.
    """
    body = await _read_json(request)
    try:
        arguments = body.get("arguments") if isinstance(body.get("arguments"), dict) else body
        try:
            args = EscalateToHumanArgs.model_validate(arguments)
        except ValidationError:
            args = EscalateToHumanArgs()

        call_control_id = x_telnyx_call_control_id or body.get("call_control_id")
        outcome = await service.escalate(
            EscalationTrigger(
                item_requested=args.item_requested,
                caller_context=args.caller_context,
                parent_provider=PROVIDER,
                parent_call_id=call_control_id,
                control_reference=call_control_id or "",
            )
        )
        result = outcome.message
    except Exception as e:
        logger.error(f"Error handling Telnyx escalate-to-human tool call: {e}", exc_info=True)
        result = PLACEMENT_FAILED_MESSAGE

    return TelnyxToolResponse(result=result).model_dump()
