"""Vapi server-message webhooks and assistant tool endpoints."""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from callrelay.api.deps import get_call_event_service, get_escalation_service
from callrelay.api.schemas.escalation import EscalateToHumanArgs, ToolCallResult, VapiToolResponse
from callrelay.api.schemas.vapi import VapiServerMessage, VapiWebhookBody
from callrelay.domain.services.call_event_service import CallEventService
from callrelay.domain.services.escalation_service import (
    PLACEMENT_FAILED_MESSAGE,
    EscalationService,
    EscalationTrigger,
)
from callrelay.persistence.database import STORE_UNAVAILABLE_ERRORS

logger = logging.getLogger(__name__)

router = APIRouter()

PROVIDER = "vapi"

STATUS_UNAVAILABLE_MESSAGE = "I couldn't check on that just now. Let me try again in a moment."


async def _read_json(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Vapi request body is not valid JSON")
        return {}
    return body if isinstance(body, dict) else {}


def _parse_tool_call(body: dict[str, Any]) -> tuple[str | None, dict[str, Any], VapiServerMessage]:
    """Pull the tool call id and arguments out of a Vapi tool request.

    Arguments may arrive in ``message.toolCallList`` (as a dict or a JSON
    string), in the legacy ``message.functionCall.parameters``, or flat in
    the body.
    """
    message = VapiWebhookBody.model_validate(body).server_message()

    if message.tool_call_list:
        tool_call = message.tool_call_list[0]
        arguments = tool_call.function.arguments if tool_call.function else None
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except ValueError:
                logger.warning(f"Vapi tool call {tool_call.id} has non-JSON arguments")
                arguments = {}
        return tool_call.id, arguments if isinstance(arguments, dict) else {}, message

    if message.function_call and message.function_call.parameters:
        return None, message.function_call.parameters, message

    return None, body, message


def _primary_call_id(message: VapiServerMessage) -> str | None:
    if message.call and message.call.id:
        return message.call.id
    return message.call_id


def _control_url(message: VapiServerMessage) -> str:
    if message.call and message.call.monitor and message.call.monitor.control_url:
        return message.call.monitor.control_url
    return ""


def _tool_response(tool_call_id: str | None, result: str) -> dict[str, Any]:
    response = VapiToolResponse(
        result=result,
        results=[ToolCallResult(tool_call_id=tool_call_id, result=result)],
    )
    return response.model_dump(by_alias=True)


@router.post("/webhook")
async def vapi_webhook(
    request: Request,
    service: Annotated[CallEventService, Depends(get_call_event_service)],
) -> dict[str, Any]:
    """Handle Vapi server messages (end-of-call-report, status-update).

    Malformed or unknown payloads are acknowledged so Vapi does not retry
    them; only an unreachable database returns 503.
    """
    body = await _read_json(request)
    try:
        await service.handle_event(PROVIDER, body)
    except STORE_UNAVAILABLE_ERRORS as e:
        logger.error(f"Database unavailable for Vapi webhook: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Call store unavailable",
        )
    except Exception as e:
        logger.error(f"Error processing Vapi webhook: {e}", exc_info=True)

    return {"ok": True}


@router.post("/tools/escalate-to-human")
async def escalate_to_human(
    request: Request,
    service: Annotated[EscalationService, Depends(get_escalation_service)],
) -> dict[str, Any]:
    """Vapi tool: ask a human about an item while the customer holds."""
    body = await _read_json(request)
    tool_call_id = None
    try:
        tool_call_id, arguments, message = _parse_tool_call(body)
        try:
            args = EscalateToHumanArgs.model_validate(arguments)
        except ValidationError:
            args = EscalateToHumanArgs()

        outcome = await service.escalate(
            EscalationTrigger(
                item_requested=args.item_requested,
                caller_context=args.caller_context,
                parent_provider=PROVIDER,
                parent_call_id=_primary_call_id(message),
                control_reference=_control_url(message),
            )
        )
        result = outcome.message
    except Exception as e:
        logger.error(f"Error handling escalate-to-human tool call: {e}", exc_info=True)
        result = PLACEMENT_FAILED_MESSAGE

    return _tool_response(tool_call_id, result)


@router.post("/tools/escalation-status")
async def escalation_status(
    request: Request,
    service: Annotated[EscalationService, Depends(get_escalation_service)],
) -> dict[str, Any]:
    """Vapi tool: check whether the team has answered yet."""
    body = await _read_json(request)
    tool_call_id = None
    try:
        tool_call_id, _, message = _parse_tool_call(body)
        outcome = await service.check_status(PROVIDER, _primary_call_id(message))
        result = outcome.message
    except Exception as e:
        logger.error(f"Error handling escalation-status tool call: {e}", exc_info=True)
        result = STATUS_UNAVAILABLE_MESSAGE

    return _tool_response(tool_call_id, result)
