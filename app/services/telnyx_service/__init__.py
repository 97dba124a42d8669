"""
Telnyx Service Module - Telnyx call control integration
"""
from app.services.telnyx_service.call_coordinator import (
    CallCoordinator,
    call_coordinator
)
from app.services.telnyx_service.webhook_service import (
    EVENT_HANDLERS,
    dispatch_event
)

__all__ = [
    # Coordinator
    "CallCoordinator",
    "call_coordinator",
    # Webhook
    "EVENT_HANDLERS",
    "dispatch_event",
]
