"""
Recording Service - Mirror Telnyx recordings to permanent Cloudinary storage
Telnyx recording URLs expire; the mirrored URL does not. Any failure keeps the
original Telnyx URL.
"""
import asyncio
import logging
from typing import Optional
import cloudinary
import cloudinary.uploader
import httpx
from app.config import settings

logger = logging.getLogger(__name__)

_cloudinary_configured = False

DOWNLOAD_TIMEOUT_SECONDS = 60.0


def _ensure_cloudinary_configured():
    """Ensure Cloudinary is configured"""
    global _cloudinary_configured
    if not _cloudinary_configured:
        if not settings.cloudinary_configured:
            raise ValueError("Cloudinary credentials not configured. Please set CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, and CLOUDINARY_API_SECRET in .env")
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True
        )
        _cloudinary_configured = True


def upload_bytes_to_cloudinary(content: bytes, public_id: str, resource_type: str = "video") -> str:
    """
    Upload bytes under a fixed public id (overwrites a previous upload)
    Cloudinary files audio under resource_type "video".
    Returns: secure URL
    """
    _ensure_cloudinary_configured()
    try:
        result = cloudinary.uploader.upload(
            content,
            public_id=public_id,
            resource_type=resource_type,
            overwrite=True
        )
        return result["secure_url"]
    except Exception as e:
        raise ValueError(f"Failed to upload file to Cloudinary: {str(e)}")


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True)


async def download_recording(url: str) -> bytes:
    async with _http_client() as client:
        response = await client.get(url)
    if response.status_code != 200:
        raise ValueError(f"download {response.status_code}")
    return response.content


async def mirror_recording(call_id: str, recording_url: Optional[str]) -> Optional[str]:
    """Copy a recording to Cloudinary and return its permanent URL (or the original URL)"""
    if not recording_url or not settings.cloudinary_configured:
        return recording_url

    try:
        content = await download_recording(recording_url)
        public_id = f"{settings.RECORDINGS_FOLDER}/{call_id}"
        loop = asyncio.get_running_loop()
        permanent_url = await loop.run_in_executor(None, upload_bytes_to_cloudinary, content, public_id)
        logger.info(f"✅ Uploaded recording for {call_id} to Cloudinary: {permanent_url}")
        return permanent_url
    except Exception as e:
        logger.error(f"❌ Recording mirror failed for {call_id}, keeping Telnyx URL: {e}")
        return recording_url


async def upload_transcript(call_id: str, text: str) -> Optional[str]:
    """Store transcript text next to the recording; None when storage is off or fails"""
    if not settings.cloudinary_configured:
        return None
    try:
        public_id = f"{settings.RECORDINGS_FOLDER}/transcripts/{call_id}.txt"
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, upload_bytes_to_cloudinary, text.encode("utf-8"), public_id, "raw")
    except Exception as e:
        logger.error(f"❌ Transcript upload failed for {call_id}: {e}")
        return None
