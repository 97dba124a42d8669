"""
Telnyx Webhook Service - Route call-control events to the call coordinator
Dispatch is a plain lookup on event_type. Handler failures are logged and
swallowed here: Telnyx gets its 200 regardless and would not retry usefully.
"""
from typing import Awaitable, Callable, Dict
import logging
from app.schemas.webhook import TelnyxEvent
from app.services.telnyx_service.call_coordinator import CallCoordinator

logger = logging.getLogger(__name__)

Handler = Callable[[CallCoordinator, TelnyxEvent], Awaitable[None]]

EVENT_HANDLERS: Dict[str, Handler] = {
    "call.initiated": CallCoordinator.handle_call_initiated,
    "call.answered": CallCoordinator.handle_call_answered,
    "call.hangup": CallCoordinator.handle_call_hangup,
    "call.recording.saved": CallCoordinator.handle_recording_saved,
    "call.dtmf.received": CallCoordinator.handle_dtmf,
    "call.bridged": CallCoordinator.handle_call_bridged,
}

# Progress notifications we receive for every prompt; nothing to do
NOISE_EVENTS = {
    "call.speak.started",
    "call.speak.ended",
    "call.gather.ended",
    "call.playback.started",
    "call.playback.ended",
}


async def dispatch_event(event: TelnyxEvent, coordinator: CallCoordinator) -> bool:
    """
    Run the handler for an event

    Returns:
        True if a handler ran to completion, False if the event was ignored or failed
    """
    logger.info(f"📨 Webhook: {event.event_type} CallID: {event.call_id}")

    if event.event_type in NOISE_EVENTS:
        return False

    handler = EVENT_HANDLERS.get(event.event_type)
    if handler is None:
        logger.info(f"🤷 Unhandled event: {event.event_type}")
        return False

    try:
        await handler(coordinator, event)
        return True
    except Exception as e:
        logger.error(f"❌ Webhook handler error for {event.event_type} ({event.call_id}): {e}", exc_info=True)
        return False
