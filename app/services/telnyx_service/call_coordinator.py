"""
Call Coordinator - Bridges waiting customer calls to a human representative

Owns all transient call state for the process:
- active_calls: call_id -> ActiveCall, from answer until hangup (duration source)
- pending_by_customer / pending_by_human: the customer <-> representative leg
  association, from dial until bridge, no-answer timeout or customer hangup
- one no-answer timeout task per pending customer call

Handlers run on the event loop only, so the maps need no locks; every timer
re-checks the association before acting.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Set
import asyncio
import logging
import time
from app.config import settings
from app.schemas.webhook import TelnyxEvent
from app.services import call_service, recording_service, transcription_service, zapier_service
from app.services.call_service import utcnow
from app.services.telnyx_service import client as telnyx
from app.services.telnyx_service import ivr_service as ivr

logger = logging.getLogger(__name__)

TRANSFER_DIGITS = ("1", "0")
DETAILS_DIGIT = "2"
DETAILS_TERMINATOR = "#"
OPERATOR_CALL_TYPES = ("customer_followup", "contractor_outreach")


@dataclass
class ActiveCall:
    status: str = "active"
    started_at: datetime = field(default_factory=utcnow)
    started_monotonic: float = field(default_factory=time.monotonic)
    participants: int = 1

    def elapsed_seconds(self) -> int:
        return int(time.monotonic() - self.started_monotonic)


class CallCoordinator:
    def __init__(self):
        self.active_calls: Dict[str, ActiveCall] = {}
        self.pending_by_customer: Dict[str, str] = {}
        self.pending_by_human: Dict[str, str] = {}
        self.bridged: Set[str] = set()
        self.operator_calls: Set[str] = set()
        self._connecting: Set[str] = set()
        self._timeouts: Dict[str, asyncio.Task] = {}
        self._details_digits: Dict[str, str] = {}

    # ------------------------------------------------------------
    # Pending association
    # ------------------------------------------------------------

    def find_customer_for_human(self, human_call_id: str) -> Optional[str]:
        return self.pending_by_human.get(human_call_id)

    def _register_pending(self, customer_call_id: str, human_call_id: str) -> None:
        self.pending_by_customer[customer_call_id] = human_call_id
        self.pending_by_human[human_call_id] = customer_call_id
        self._timeouts[customer_call_id] = asyncio.create_task(
            self._human_answer_timeout(customer_call_id, human_call_id)
        )

    def _cancel_timeout(self, customer_call_id: str) -> None:
        task = self._timeouts.pop(customer_call_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _clear_pending(self, customer_call_id: str) -> Optional[str]:
        """Remove both directions of the association and its timeout"""
        human_call_id = self.pending_by_customer.pop(customer_call_id, None)
        if human_call_id is not None:
            self.pending_by_human.pop(human_call_id, None)
        self._cancel_timeout(customer_call_id)
        return human_call_id

    async def wait_for_mapping(self, human_call_id: str) -> Optional[str]:
        """Poll briefly for a representative leg that answered before its mapping was registered"""
        deadline = time.monotonic() + settings.MAPPING_WAIT_SECONDS
        while time.monotonic() < deadline:
            customer_call_id = self.pending_by_human.get(human_call_id)
            if customer_call_id:
                return customer_call_id
            await asyncio.sleep(settings.MAPPING_POLL_SECONDS)
        return self.pending_by_human.get(human_call_id)

    async def _human_answer_timeout(self, customer_call_id: str, human_call_id: str) -> None:
        await asyncio.sleep(settings.HUMAN_ANSWER_TIMEOUT_SECONDS)
        if self.pending_by_customer.get(customer_call_id) != human_call_id:
            return

        logger.info(f"⏱️ Representative leg {human_call_id} did not answer; sending {customer_call_id} to voicemail")
        self._clear_pending(customer_call_id)
        await telnyx.hangup_call(human_call_id)
        await ivr.play_no_answer_message(customer_call_id)

    # ------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------

    async def connect_to_human(self, customer_call_id: str) -> Optional[str]:
        """
        Dial the representative for a waiting customer call.
        A customer that already has a representative leg pending (or being
        dialed) is rejected; the existing leg stays associated.

        Returns:
            The representative leg's call id, or None if nothing was dialed
        """
        if customer_call_id in self.pending_by_customer or customer_call_id in self._connecting:
            logger.warning(f"⚠️ Customer {customer_call_id} already has a representative leg pending")
            await telnyx.speak(customer_call_id, ivr.ALREADY_CONNECTING_MESSAGE)
            return None

        if not settings.HUMAN_PHONE_NUMBER:
            logger.error("❌ HUMAN_PHONE_NUMBER not configured")
            await telnyx.speak(customer_call_id, ivr.NO_REPRESENTATIVE_MESSAGE)
            return None

        self._connecting.add(customer_call_id)
        try:
            await call_service.upsert_call(
                customer_call_id,
                call_type="human_transfer",
                notes="Customer transferred to human representative"
            )
            await asyncio.sleep(settings.HUMAN_DIAL_DELAY_SECONDS)

            if customer_call_id not in self._connecting:
                logger.info(f"📴 Customer {customer_call_id} left before the representative was dialed")
                return None

            human_call_id = await telnyx.create_outbound_call(settings.HUMAN_PHONE_NUMBER)
            if not human_call_id:
                await telnyx.speak(customer_call_id, ivr.DIAL_FAILED_MESSAGE)
                return None

            if customer_call_id not in self._connecting:
                # Customer hung up while the representative was being dialed
                logger.info(f"📴 Customer {customer_call_id} left during dial; hanging up {human_call_id}")
                await telnyx.hangup_call(human_call_id)
                return None

            self._register_pending(customer_call_id, human_call_id)
            await call_service.upsert_call(
                human_call_id,
                direction="outbound",
                from_number=settings.TELNYX_PHONE_NUMBER,
                to_number=settings.HUMAN_PHONE_NUMBER,
                status="initiated",
                start_time=utcnow(),
                call_type="human_representative",
                notes=f"Calling representative for customer call {customer_call_id}"
            )
            logger.info(f"📞 Representative leg {human_call_id} ringing for customer {customer_call_id}")
            return human_call_id
        except Exception as e:
            logger.error(f"❌ connect_to_human error for {customer_call_id}: {e}", exc_info=True)
            await telnyx.speak(customer_call_id, ivr.TRANSFER_ERROR_MESSAGE)
            return None
        finally:
            self._connecting.discard(customer_call_id)

    async def handle_human_answered(self, human_call_id: str) -> bool:
        """Greet the representative, then bridge them with the waiting customer"""
        customer_call_id = self.find_customer_for_human(human_call_id)
        if not customer_call_id:
            customer_call_id = await self.wait_for_mapping(human_call_id)
        if not customer_call_id:
            logger.warning(f"⚠️ Representative {human_call_id} answered but no customer is waiting")
            await telnyx.speak(human_call_id, ivr.CUSTOMER_GONE_MESSAGE)
            return False

        # Answered in time; the no-answer path must not run from here on
        self._cancel_timeout(customer_call_id)

        await ivr.play_human_greeting(human_call_id)
        if self.pending_by_human.get(human_call_id) != customer_call_id:
            logger.warning(f"⚠️ Customer {customer_call_id} left while {human_call_id} was greeted")
            await telnyx.speak(human_call_id, ivr.CUSTOMER_GONE_MESSAGE)
            return False

        if not await telnyx.bridge_calls(customer_call_id, human_call_id):
            logger.error(f"❌ Bridge failed. customer: {customer_call_id} human: {human_call_id}")
            await telnyx.speak(human_call_id, ivr.BRIDGE_FAILED_HUMAN_MESSAGE)
            await telnyx.speak(customer_call_id, ivr.BRIDGE_FAILED_CUSTOMER_MESSAGE)
            return False

        logger.info(f"✅ Bridge requested. customer: {customer_call_id} human: {human_call_id}")
        self._clear_pending(customer_call_id)
        self.bridged.update((customer_call_id, human_call_id))
        await call_service.upsert_call(
            customer_call_id,
            call_type="human_connected",
            notes="Successfully connected to human representative"
        )
        return True

    async def place_outbound_call(self, to_number: str, call_type: str, notes: Optional[str] = None) -> Optional[Dict]:
        """Operator-initiated follow-up or contractor outreach call"""
        call_id = await telnyx.create_outbound_call(to_number)
        if not call_id:
            return None
        self.operator_calls.add(call_id)
        return await call_service.upsert_call(
            call_id,
            direction="outbound",
            from_number=settings.TELNYX_PHONE_NUMBER,
            to_number=to_number,
            status="initiated",
            start_time=utcnow(),
            call_type=call_type,
            notes=notes
        )

    # ------------------------------------------------------------
    # Webhook event handlers
    # ------------------------------------------------------------

    async def handle_call_initiated(self, event: TelnyxEvent) -> None:
        call_id = event.call_id
        if not call_id:
            logger.warning("⚠️ call.initiated without call_control_id")
            return

        if event.is_incoming:
            await call_service.upsert_call(
                call_id,
                direction="inbound",
                from_number=event.from_number,
                to_number=event.to_number,
                status="initiated",
                start_time=utcnow(),
                call_type="customer_inquiry"
            )
            await ivr.answer_and_intro(call_id)
            return

        # Outbound legs are created by connect_to_human or place_outbound_call,
        # which may already have stored the row and its call_type
        existing = await call_service.get_call(call_id)
        is_new = existing is None
        tag_as_human = is_new and call_id not in self.operator_calls
        await call_service.upsert_call(
            call_id,
            direction="outbound",
            from_number=event.from_number,
            to_number=event.to_number,
            status="initiated",
            start_time=utcnow() if is_new else None,
            call_type="human_representative" if tag_as_human else None,
            notes="Outbound leg to human" if tag_as_human else None
        )

    async def handle_call_answered(self, event: TelnyxEvent) -> None:
        call_id = event.call_id
        existing = await call_service.get_call(call_id) if call_id else None
        if existing is None and call_id not in self.pending_by_human:
            logger.warning(f"⚠️ call.answered for unknown call {call_id}")
            return

        self.active_calls[call_id] = ActiveCall()
        await call_service.upsert_call(call_id, status="answered")

        call_type = existing.get("call_type") if existing else None
        if call_id in self.operator_calls or call_type in OPERATOR_CALL_TYPES:
            await telnyx.start_recording(call_id)
        elif call_id in self.pending_by_human or call_type == "human_representative":
            await self.handle_human_answered(call_id)

    async def handle_dtmf(self, event: TelnyxEvent) -> None:
        call_id = event.call_id
        digit = event.digit
        if not call_id or digit is None:
            return
        if call_id in self.pending_by_human or call_id in self.bridged:
            logger.info(f"🔢 Ignoring digit {digit} on representative/bridged leg {call_id}")
            return

        if call_id in self._details_digits:
            await self._collect_detail_digit(call_id, digit)
            return

        logger.info(f"🔢 DTMF {digit} on {call_id}")
        if digit in TRANSFER_DIGITS:
            await telnyx.speak(call_id, ivr.TRANSFER_MESSAGE)
            await self.connect_to_human(call_id)
        elif digit == DETAILS_DIGIT:
            self._details_digits[call_id] = ""
            await ivr.prompt_for_details(call_id)
        else:
            await telnyx.speak(call_id, ivr.INVALID_SELECTION_MESSAGE)
            await asyncio.sleep(settings.INVALID_SELECTION_DELAY_SECONDS)
            await ivr.play_ivr_menu(call_id)

    async def _collect_detail_digit(self, call_id: str, digit: str) -> None:
        """Digits keyed after option 2 form the caller's zip code, ended by #"""
        if digit != DETAILS_TERMINATOR:
            if len(self._details_digits[call_id]) < ivr.DETAILS_MAX_DIGITS:
                self._details_digits[call_id] += digit
            return

        zip_code = self._details_digits.pop(call_id)
        if zip_code:
            logger.info(f"📮 Zip code {zip_code} keyed in on {call_id}")
            await call_service.upsert_call(call_id, customer_zip_code=zip_code)

    async def handle_call_hangup(self, event: TelnyxEvent) -> None:
        call_id = event.call_id
        if not call_id:
            return

        info = self.active_calls.pop(call_id, None)
        duration = info.elapsed_seconds() if info else None
        self._details_digits.pop(call_id, None)
        self._connecting.discard(call_id)
        self.bridged.discard(call_id)
        self.operator_calls.discard(call_id)

        if call_id in self.pending_by_customer:
            # Customer gave up while the representative was still ringing
            human_call_id = self._clear_pending(call_id)
            logger.info(f"📴 Customer {call_id} hung up; cancelling representative leg {human_call_id}")
            await telnyx.hangup_call(human_call_id)

        existing = await call_service.get_call(call_id)
        if not existing:
            logger.warning(f"⚠️ call.hangup for unknown call {call_id}")
            return

        # Repeated hangups keep the first end_time and duration
        end_time = None if existing.get("end_time") else utcnow()
        await call_service.upsert_call(call_id, status="completed", end_time=end_time, duration=duration)
        logger.info(f"📴 Call {call_id} completed (duration: {duration}s)")
        await zapier_service.schedule_zapier(call_id)

    async def handle_recording_saved(self, event: TelnyxEvent) -> None:
        call_id = event.call_id
        if not call_id or not event.recording_url:
            logger.warning(f"⚠️ call.recording.saved without recording URL for {call_id}")
            return
        if not await call_service.get_call(call_id):
            logger.warning(f"⚠️ Recording saved for unknown call {call_id}")
            return

        recording_url = await recording_service.mirror_recording(call_id, event.recording_url)
        await call_service.upsert_call(call_id, recording_url=recording_url)

        transcript = await transcription_service.transcribe_recording(call_id, recording_url)
        if transcript:
            transcript_url = await recording_service.upload_transcript(call_id, transcript)
            await call_service.upsert_call(call_id, transcript=transcript, transcript_url=transcript_url)
        else:
            await call_service.upsert_call(call_id, transcript=transcription_service.TRANSCRIPT_PLACEHOLDER)

        await zapier_service.schedule_zapier(call_id)

    async def handle_call_bridged(self, event: TelnyxEvent) -> None:
        logger.info(f"🔗 Telnyx confirms bridge for: {event.call_id}")

    async def shutdown(self) -> None:
        """Cancel outstanding no-answer timers"""
        for customer_call_id in list(self._timeouts):
            self._cancel_timeout(customer_call_id)


call_coordinator = CallCoordinator()
