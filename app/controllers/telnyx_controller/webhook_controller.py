"""
Telnyx Webhook Controller - Public endpoint for Telnyx call-control events
Always acknowledges with 200 "OK"; events are handled after the response.
"""
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from app.schemas.webhook import TelnyxEvent
from app.services.telnyx_service.call_coordinator import CallCoordinator
from app.services.telnyx_service.webhook_service import dispatch_event
from app.utils.dependencies import get_call_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.get("/test")
async def test_webhook():
    """
    Simple test endpoint to verify webhook routes are accessible
    """
    return {
        "status": "ok",
        "message": "Webhook endpoints are accessible",
        "endpoints": {
            "calls": "/webhooks/calls",
        }
    }


@router.post("/calls", response_class=PlainTextResponse)
async def telnyx_call_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    coordinator: CallCoordinator = Depends(get_call_coordinator)
):
    """
    Handle a call-control event from Telnyx
    IMPORTANT: Telnyx only needs the 200; it does not act on application errors
    """
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"⚠️ Webhook body is not JSON: {e}")
        return PlainTextResponse("OK", status_code=200)

    try:
        event = TelnyxEvent.from_body(body)
    except ValidationError as e:
        logger.warning(f"⚠️ Webhook body could not be decoded: {e}")
        return PlainTextResponse("OK", status_code=200)

    background_tasks.add_task(dispatch_event, event, coordinator)
    return PlainTextResponse("OK", status_code=200)
