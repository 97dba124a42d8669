"""
IVR Service - Prompt wording and composite prompt flows for live calls
Uses recorded audio when enabled and configured, otherwise text-to-speech.
"""
import asyncio
import logging
from app.config import settings
from app.services.telnyx_service import client as telnyx

logger = logging.getLogger(__name__)

MENU_PROMPT = (
    "Thanks for calling our flood and water damage restoration team. "
    "Press 1 to reach a representative now. "
    "Press 2 to leave details and we'll call you back. "
    "You can also press 0 to reach a representative."
)
TRANSFER_MESSAGE = "Connecting you now. Please remain on the line while we dial our representative."
DETAILS_PROMPT = (
    "Please describe your water or flood damage situation after the beep. "
    "Include your address and details of the damage. "
    "You can also enter your zip code followed by the pound key. "
    "When you're done, you can simply hang up."
)
INVALID_SELECTION_MESSAGE = "Invalid selection. Please try again."
NO_ANSWER_MESSAGE = (
    "I'm sorry, our representative is unavailable. "
    "Please leave your name, phone number, address, and details about the water damage after the beep. "
    "When you're done, you can hang up."
)
HUMAN_GREETING = "A customer is waiting on the line. Connecting you now on a recorded line."
NO_REPRESENTATIVE_MESSAGE = "Sorry, we can't reach a representative right now."
DIAL_FAILED_MESSAGE = (
    "I'm sorry, we couldn't reach our representative. "
    "Please leave a detailed message after the tone."
)
TRANSFER_ERROR_MESSAGE = "We're having trouble connecting. Please call back in a few minutes or leave a message."
CUSTOMER_GONE_MESSAGE = "A customer just disconnected. Sorry for the inconvenience."
BRIDGE_FAILED_HUMAN_MESSAGE = "I'm sorry, there was a technical issue connecting you to the customer."
BRIDGE_FAILED_CUSTOMER_MESSAGE = "We're having technical difficulties. Please call back in a few minutes."
ALREADY_CONNECTING_MESSAGE = "We're still connecting you to a representative. Please stay on the line."

MENU_TIMEOUT_MS = 12000
DETAILS_TIMEOUT_MS = 30000
DETAILS_MAX_DIGITS = 10


def _use_audio(url) -> bool:
    return bool(settings.USE_RECORDED_PROMPTS and url)


async def play_ivr_menu(call_id: str) -> bool:
    """Play the main menu and gather one digit"""
    if _use_audio(settings.MENU_AUDIO_URL):
        return await telnyx.gather_using_audio(
            call_id, settings.MENU_AUDIO_URL,
            min_digits=1, max_digits=1, timeout_ms=MENU_TIMEOUT_MS, terminating_digit="#"
        )
    return await telnyx.gather_using_speak(
        call_id, MENU_PROMPT,
        min_digits=1, max_digits=1, timeout_ms=MENU_TIMEOUT_MS, terminating_digit="#"
    )


async def answer_and_intro(call_id: str) -> bool:
    """Answer an inbound call, start recording, then play the menu"""
    if not await telnyx.answer_call(call_id):
        logger.error(f"❌ Could not answer {call_id}; skipping intro")
        return False

    if not await telnyx.start_recording(call_id):
        logger.warning(f"⚠️ Recording did not start for {call_id}")

    if _use_audio(settings.GREETING_AUDIO_URL):
        await telnyx.playback_audio(call_id, settings.GREETING_AUDIO_URL)
        await asyncio.sleep(settings.GREETING_SETTLE_SECONDS)

    await asyncio.sleep(settings.IVR_MENU_DELAY_SECONDS)
    return await play_ivr_menu(call_id)


async def prompt_for_details(call_id: str) -> bool:
    """Ask the caller to describe the damage; an optional zip code can be keyed in"""
    return await telnyx.gather_using_speak(
        call_id, DETAILS_PROMPT,
        min_digits=1, max_digits=DETAILS_MAX_DIGITS, timeout_ms=DETAILS_TIMEOUT_MS, terminating_digit="#"
    )


async def play_human_greeting(call_id: str) -> None:
    """Greet the representative before the bridge"""
    if _use_audio(settings.HUMAN_GREETING_AUDIO_URL):
        await telnyx.playback_audio(call_id, settings.HUMAN_GREETING_AUDIO_URL)
    else:
        await telnyx.speak(call_id, HUMAN_GREETING)
    await asyncio.sleep(settings.HUMAN_GREETING_DELAY_SECONDS)


async def play_no_answer_message(call_id: str) -> bool:
    return await telnyx.speak(call_id, NO_ANSWER_MESSAGE)
