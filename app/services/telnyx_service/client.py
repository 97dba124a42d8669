"""
Telnyx Client Service - Call control REST actions
Low-level Telnyx API interactions. Every action logs failures and returns
False/None instead of raising, so a webhook handler never dies on the carrier.
"""
from typing import Any, Dict, Optional
import httpx
import logging
from app.config import settings

logger = logging.getLogger(__name__)


def telnyx_headers() -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "Authorization": f"Bearer {settings.TELNYX_API_KEY or ''}",
    }


def _http_client() -> httpx.AsyncClient:
    """Build the HTTP client used for Telnyx requests"""
    return httpx.AsyncClient(
        base_url=settings.TELNYX_API_BASE,
        headers=telnyx_headers(),
        timeout=settings.TELNYX_TIMEOUT_SECONDS,
    )


async def _post(path: str, body: Optional[Dict[str, Any]] = None, label: str = "") -> Optional[httpx.Response]:
    """POST to Telnyx; returns the response on 2xx, otherwise None"""
    label = label or path
    try:
        async with _http_client() as client:
            response = await client.post(path, json=body or {})
    except httpx.HTTPError as e:
        logger.error(f"❌ Telnyx {label} request failed: {e}")
        return None

    if response.is_success:
        return response
    logger.error(f"❌ Telnyx {label} failed ({response.status_code}): {response.text}")
    return None


async def _call_action(call_id: str, action: str, body: Optional[Dict[str, Any]] = None) -> bool:
    if not call_id:
        logger.warning(f"⚠️ Skipping Telnyx {action}: no call id")
        return False
    response = await _post(f"/calls/{call_id}/actions/{action}", body, label=action)
    return response is not None


async def answer_call(call_id: str) -> bool:
    return await _call_action(call_id, "answer")


async def start_recording(call_id: str, format: str = "mp3", channels: str = "dual") -> bool:
    return await _call_action(call_id, "record_start", {"format": format, "channels": channels})


async def speak(call_id: str, message: str) -> bool:
    """Text-to-speech on a live call"""
    return await _call_action(call_id, "speak", {
        "payload": message,
        "voice": settings.TTS_VOICE,
        "language": settings.TTS_LANGUAGE,
    })


async def playback_audio(call_id: str, audio_url: str) -> bool:
    return await _call_action(call_id, "playback_start", {"audio_url": audio_url})


async def gather_using_speak(
    call_id: str,
    message: str,
    min_digits: int = 1,
    max_digits: int = 1,
    timeout_ms: int = 10000,
    terminating_digit: str = "#"
) -> bool:
    """Speak a prompt and collect DTMF digits"""
    return await _call_action(call_id, "gather_using_speak", {
        "payload": message,
        "voice": settings.TTS_VOICE,
        "language": settings.TTS_LANGUAGE,
        "minimum_digits": min_digits,
        "maximum_digits": max_digits,
        "timeout_millis": timeout_ms,
        "terminating_digit": terminating_digit,
    })


async def gather_using_audio(
    call_id: str,
    audio_url: str,
    min_digits: int = 1,
    max_digits: int = 1,
    timeout_ms: int = 10000,
    terminating_digit: str = "#"
) -> bool:
    """Play a hosted audio prompt and collect DTMF digits"""
    return await _call_action(call_id, "gather_using_audio", {
        "audio_url": audio_url,
        "minimum_digits": min_digits,
        "maximum_digits": max_digits,
        "timeout_millis": timeout_ms,
        "terminating_digit": terminating_digit,
    })


async def bridge_calls(call_id: str, other_call_id: str) -> bool:
    """Bridge call_id with other_call_id into one conversation"""
    return await _call_action(call_id, "bridge", {"call_control_id": other_call_id})


async def hangup_call(call_id: str) -> bool:
    return await _call_action(call_id, "hangup")


async def create_outbound_call(
    to_number: str,
    from_number: Optional[str] = None,
    timeout_secs: Optional[int] = None
) -> Optional[str]:
    """
    Dial a new call leg through the configured connection

    Returns:
        The new leg's call_control_id, or None if Telnyx refused the call
    """
    body = {
        "to": to_number,
        "from": from_number or settings.TELNYX_PHONE_NUMBER,
        "connection_id": settings.TELNYX_CONNECTION_ID,
        "webhook_url": settings.webhook_url,
        "machine_detection": "disabled",
        "timeout_secs": timeout_secs or settings.HUMAN_RING_TIMEOUT_SECONDS,
    }
    logger.info(f"📞 Dialing {to_number} from {body['from']}")
    response = await _post("/calls", body, label="dial")
    if response is None:
        return None

    try:
        call_id = response.json()["data"]["call_control_id"]
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"❌ Unexpected Telnyx dial response: {e} - {response.text}")
        return None
    logger.info(f"✅ Outbound leg created: {call_id}")
    return call_id
