"""
Transcription Service - Optional AssemblyAI speech-to-text for recordings
Without an API key every call falls back to the placeholder transcript.
"""
from typing import Optional
import asyncio
import time
import httpx
import logging
from app.config import settings

logger = logging.getLogger(__name__)

TRANSCRIPT_PLACEHOLDER = "Transcript unavailable"
DEFAULT_TIMEOUT = 15.0


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


def _headers() -> dict:
    return {
        "authorization": settings.ASSEMBLYAI_API_KEY or "",
        "content-type": "application/json",
    }


async def start_transcription_job(client: httpx.AsyncClient, audio_url: str) -> str:
    """Create an AssemblyAI job; returns the job id"""
    response = await client.post(
        f"{settings.ASSEMBLYAI_API_BASE}/transcript",
        headers=_headers(),
        json={"audio_url": audio_url, "language_code": "en", "punctuate": True},
        timeout=DEFAULT_TIMEOUT
    )
    if response.status_code != 200:
        raise ValueError(f"AssemblyAI create failed: {response.text}")
    return response.json()["id"]


async def wait_for_transcript(client: httpx.AsyncClient, job_id: str) -> str:
    """Poll a job until it completes, errors, or runs out of time"""
    deadline = time.monotonic() + settings.ASSEMBLYAI_MAX_WAIT_SECONDS
    while time.monotonic() < deadline:
        response = await client.get(
            f"{settings.ASSEMBLYAI_API_BASE}/transcript/{job_id}",
            headers=_headers(),
            timeout=DEFAULT_TIMEOUT
        )
        if response.status_code != 200:
            raise ValueError(f"AssemblyAI status failed: {response.text}")
        result = response.json()
        if result.get("status") == "completed":
            return result.get("text") or ""
        if result.get("status") == "error":
            raise ValueError(f"AssemblyAI error: {result.get('error') or 'unknown'}")
        await asyncio.sleep(settings.ASSEMBLYAI_POLL_SECONDS)
    raise ValueError("AssemblyAI timeout")


async def transcribe_recording(call_id: str, audio_url: Optional[str]) -> Optional[str]:
    """
    Transcribe a recording with AssemblyAI

    Returns:
        Transcript text, or None when transcription is off or fails
    """
    if not settings.ASSEMBLYAI_API_KEY or not audio_url:
        return None

    try:
        async with _http_client() as client:
            job_id = await start_transcription_job(client, audio_url)
            logger.info(f"📝 Transcription job {job_id} started for {call_id}")
            text = await wait_for_transcript(client, job_id)
        logger.info(f"✅ Transcript ready for {call_id} ({len(text)} chars)")
        return text
    except Exception as e:
        logger.error(f"❌ Transcription failed for {call_id}: {e}")
        return None
