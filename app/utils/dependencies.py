from app.services.telnyx_service.call_coordinator import CallCoordinator, call_coordinator


def get_call_coordinator() -> CallCoordinator:
    """The process-wide call coordinator (FastAPI dependency, overridable in tests)"""
    return call_coordinator
