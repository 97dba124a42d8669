"""
Zapier Service - Deliver completed-call summaries to the lead automation webhook

Delivery is gated by the record's zapier_sent flag, which flips false -> true
exactly once. Eligibility is always evaluated against a fresh read of the
record, never a snapshot taken when the send was scheduled.
"""
from typing import Dict, Optional, Set
from datetime import datetime, timezone
import asyncio
import httpx
import logging
from app.config import settings
from app.services.call_service import get_call, mark_zapier_sent

logger = logging.getLogger(__name__)

SOURCE = "Water Damage Restoration Phone System"
LEAD_SOURCE = "Inbound Phone Call"

# Outcomes of a single delivery attempt
SENT = "sent"
SKIPPED = "skipped"  # Not eligible / already sent / in flight
REJECTED = "rejected"  # Endpoint answered with a non-2xx status
FAILED = "failed"  # Network-level failure

_in_flight: Set[str] = set()
_scheduled: Set[str] = set()
_background_tasks: Set[asyncio.Task] = set()


def eligible_call_types() -> Set[str]:
    types = {"customer_inquiry", "human_connected"}
    if settings.ZAPIER_INCLUDE_HUMAN_TRANSFER:
        types.add("human_transfer")
    return types


def should_send(call: Optional[Dict]) -> bool:
    """Completed, recorded, customer-facing and not yet delivered"""
    if not call:
        return False
    return (
        call.get("status") == "completed"
        and bool(call.get("recording_url"))
        and not call.get("zapier_sent")
        and call.get("call_type") in eligible_call_types()
    )


def _mask_url(url: Optional[str]) -> str:
    if not url:
        return "(no url)"
    return f"({url[:20]}…{url[-7:]})"


def build_payload(call: Dict) -> Dict:
    """Flat key/value summary of the record's current values"""
    return {
        "call_id": call.get("call_id"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "customer_phone": call.get("from_number"),
        "customer_name": call.get("customer_name"),
        "customer_zip_code": call.get("customer_zip_code"),
        "call_duration_seconds": call.get("duration") or 0,
        "call_start_time": call.get("start_time"),
        "call_end_time": call.get("end_time"),
        "call_type": call.get("call_type"),
        "call_status": call.get("status"),
        "recording_url": call.get("recording_url"),
        "transcript": call.get("transcript"),
        "transcript_url": call.get("transcript_url") or None,
        "lead_quality": call.get("lead_quality"),
        "notes": call.get("notes"),
        "source": SOURCE,
        "lead_source": LEAD_SOURCE,
        "business_phone": call.get("to_number"),
        # Friendly duplicates used by the existing Zap
        "Caller Phone": call.get("from_number"),
        "Recording URL": call.get("recording_url"),
        "Transcript URL": call.get("transcript_url") or "",
    }


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.ZAPIER_TIMEOUT_SECONDS)


async def send_to_zapier(call_id: str, force: bool = False) -> str:
    """
    Make one delivery attempt for a call

    Args:
        call_id: Telnyx call id of the record
        force: skip the status/recording/type checks (manual operator trigger);
               a record that was already delivered is never sent again

    Returns:
        One of SENT, SKIPPED, REJECTED, FAILED
    """
    if not settings.zapier_configured:
        logger.warning("⚠️ ZAPIER_WEBHOOK_URL not configured, skipping delivery")
        return SKIPPED
    if call_id in _in_flight:
        logger.info(f"⏳ Zapier delivery already in flight for {call_id}")
        return SKIPPED

    _in_flight.add(call_id)
    try:
        call = await get_call(call_id)
        if not call:
            logger.warning(f"⚠️ Zapier: call {call_id} not found")
            return SKIPPED

        eligible = should_send(call)
        logger.info(
            f"🔎 ZAPIER DECISION → {call_id} status={call.get('status')} type={call.get('call_type')} "
            f"recording={bool(call.get('recording_url'))} sent={call.get('zapier_sent')} "
            f"eligible={eligible} force={force}"
        )
        if call.get("zapier_sent") or not (eligible or force):
            return SKIPPED

        payload = build_payload(call)
        logger.info(f"📤 ZAPIER SEND → {_mask_url(settings.ZAPIER_WEBHOOK_URL)} for {call_id}")
        try:
            async with _http_client() as client:
                response = await client.post(settings.ZAPIER_WEBHOOK_URL, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"❌ Zapier request failed for {call_id}: {e}")
            return FAILED

        logger.info(f"📥 ZAPIER RESP → status: {response.status_code} body: {response.text[:200]}")
        if not response.is_success:
            return REJECTED

        if await mark_zapier_sent(call_id):
            logger.info(f"✅ Zapier delivery recorded for {call_id}")
        return SENT
    finally:
        _in_flight.discard(call_id)


def _retry_delay(outcome: str) -> float:
    if outcome == FAILED:
        return settings.ZAPIER_ERROR_RETRY_DELAY_SECONDS
    return settings.ZAPIER_RETRY_DELAY_SECONDS


async def _delivery_loop(call_id: str, delay: float, force: bool) -> None:
    """Send after a delay, retrying with fixed backoff up to ZAPIER_MAX_ATTEMPTS"""
    try:
        await asyncio.sleep(delay)
        attempt = 1
        while True:
            try:
                outcome = await send_to_zapier(call_id, force=force)
            except Exception as e:
                logger.error(f"❌ Zapier delivery error for {call_id}: {e}", exc_info=True)
                outcome = FAILED
            if outcome in (SENT, SKIPPED):
                return
            if attempt >= settings.ZAPIER_MAX_ATTEMPTS:
                logger.error(f"❌ Giving up on Zapier delivery for {call_id} after {attempt} attempts")
                return
            attempt += 1
            wait = _retry_delay(outcome)
            logger.warning(f"🔁 Zapier retry {attempt}/{settings.ZAPIER_MAX_ATTEMPTS} for {call_id} in {wait}s")
            await asyncio.sleep(wait)
    finally:
        _scheduled.discard(call_id)


def _start_delivery(call_id: str, delay: float, force: bool = False) -> bool:
    if call_id in _scheduled:
        logger.info(f"⏳ Zapier delivery already scheduled for {call_id}")
        return False
    _scheduled.add(call_id)
    task = asyncio.create_task(_delivery_loop(call_id, delay, force))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return True


async def schedule_zapier(call_id: str) -> bool:
    """
    Schedule delivery if the record is eligible right now.
    Returns True when a new delivery was scheduled.
    """
    if not settings.zapier_configured:
        return False
    call = await get_call(call_id)
    if not should_send(call):
        return False
    logger.info(f"🗓️ Zapier delivery for {call_id} in {settings.ZAPIER_SEND_DELAY_SECONDS}s")
    return _start_delivery(call_id, settings.ZAPIER_SEND_DELAY_SECONDS)


async def trigger_zapier(call_id: str) -> str:
    """Manual operator trigger: send now, keep retrying in the background on failure"""
    outcome = await send_to_zapier(call_id, force=True)
    if outcome in (REJECTED, FAILED):
        _start_delivery(call_id, _retry_delay(outcome), force=True)
    return outcome


async def wait_for_pending_deliveries() -> None:
    """Wait for scheduled deliveries (used on shutdown and in tests)"""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


async def cancel_pending_deliveries() -> None:
    for task in list(_background_tasks):
        task.cancel()
    await wait_for_pending_deliveries()
    _scheduled.clear()
