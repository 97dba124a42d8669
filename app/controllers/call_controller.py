"""
Call Controller - Operator API endpoints for call records
"""
import logging
from fastapi import APIRouter, HTTPException, Depends, status, Query
from typing import Optional
from app.schemas.call import (
    CallResponse,
    PaginatedCallsResponse,
    CallCustomerUpdateRequest,
    OutboundCallRequest,
    OutboundCallResponse,
    ZapierTriggerResponse
)
from app.services.call_service import (
    get_call,
    list_calls,
    update_customer_fields
)
from app.services.telnyx_service.call_coordinator import CallCoordinator
from app.services.zapier_service import trigger_zapier, SENT, REJECTED, FAILED
from app.utils.dependencies import get_call_coordinator
from app.config import settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/calls", tags=["Calls"])

CALL_TYPES = (
    "customer_inquiry",
    "human_representative",
    "human_transfer",
    "human_connected",
    "customer_followup",
    "contractor_outreach",
)


def _normalize_phone_number(phone_number: str) -> str:
    """Strip formatting and assume a US number when no country code is given"""
    cleaned = ''.join(c for c in phone_number if c.isdigit() or c == '+')
    if cleaned.startswith("+"):
        return cleaned
    if len(cleaned) == 10:
        return "+1" + cleaned
    return "+" + cleaned


@router.get("", response_model=PaginatedCallsResponse)
async def get_calls_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    call_type: Optional[str] = Query(None)
):
    """Get paginated call history, newest first"""
    if call_type and call_type not in CALL_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown call_type '{call_type}'"
        )
    try:
        calls, total = await list_calls(call_type=call_type, page=page, page_size=page_size)
    except Exception as e:
        logger.error(f"❌ Failed to list calls: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list calls: {str(e)}"
        )
    return PaginatedCallsResponse(
        items=[CallResponse(**call) for call in calls],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/outbound", response_model=OutboundCallResponse, status_code=status.HTTP_201_CREATED)
async def place_outbound_call_endpoint(
    request: OutboundCallRequest,
    coordinator: CallCoordinator = Depends(get_call_coordinator)
):
    """Call a customer back or reach out to a contractor"""
    phone_number = _normalize_phone_number(request.phone_number)
    digits = phone_number[1:]
    if not digits.isdigit() or len(phone_number) < 8 or len(phone_number) > 16:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid phone number format: {request.phone_number}. Expected E.164 format (e.g., +15551234567)"
        )

    logger.info(f"📞 Outbound {request.call_type} call requested to {phone_number}")
    try:
        record = await coordinator.place_outbound_call(phone_number, request.call_type, request.notes)
    except Exception as e:
        logger.error(f"❌ Outbound call failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}"
        )
    if not record:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Telnyx did not accept the outbound call"
        )

    return OutboundCallResponse(
        call_id=record["call_id"],
        to_number=record["to_number"],
        from_number=record["from_number"],
        call_type=record["call_type"],
        status=record["status"]
    )


@router.get("/{call_id}", response_model=CallResponse)
async def get_call_endpoint(call_id: str):
    """Get specific call details"""
    try:
        call = await get_call(call_id)
    except Exception as e:
        logger.error(f"❌ Failed to load call {call_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load call: {str(e)}"
        )
    if not call:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Call not found"
        )
    return CallResponse(**call)


@router.patch("/{call_id}/customer", response_model=CallResponse)
async def update_customer_endpoint(call_id: str, request: CallCustomerUpdateRequest):
    """Save operator-entered customer details"""
    try:
        call = await update_customer_fields(call_id, **request.model_dump())
    except Exception as e:
        logger.error(f"❌ Failed to update customer on call {call_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update customer: {str(e)}"
        )
    if not call:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Call not found"
        )
    return CallResponse(**call)


@router.post("/{call_id}/zapier", response_model=ZapierTriggerResponse)
async def trigger_zapier_endpoint(call_id: str):
    """Manually send a call to Zapier"""
    if not settings.zapier_configured:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="ZAPIER_WEBHOOK_URL not configured"
        )
    try:
        call = await get_call(call_id)
    except Exception as e:
        logger.error(f"❌ Failed to load call {call_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load call: {str(e)}"
        )
    if not call:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Call not found"
        )
    if call.get("zapier_sent"):
        return ZapierTriggerResponse(call_id=call_id, sent=False, message="Already sent to Zapier")

    try:
        outcome = await trigger_zapier(call_id)
    except Exception as e:
        logger.error(f"❌ Failed to trigger Zapier for call {call_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to trigger Zapier: {str(e)}"
        )
    if outcome == SENT:
        return ZapierTriggerResponse(call_id=call_id, sent=True, message="Sent to Zapier")
    if outcome in (REJECTED, FAILED):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Zapier delivery failed; retrying in the background"
        )
    return ZapierTriggerResponse(call_id=call_id, sent=False, message="Delivery already in progress")
