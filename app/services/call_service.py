"""
Call Service - Business logic for call records
Every read/write goes through the single-writer database queue
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timezone
from sqlalchemy import select, func, desc
from app.database.connection import AsyncSessionLocal
from app.database.queue import db_queue
from app.models.call import Call

logger = logging.getLogger(__name__)

# Columns callers may write through upsert_call
CALL_FIELDS = (
    "direction",
    "from_number",
    "to_number",
    "status",
    "start_time",
    "end_time",
    "duration",
    "recording_url",
    "transcript",
    "transcript_url",
    "call_type",
    "customer_name",
    "customer_zip_code",
    "lead_quality",
    "notes",
    "zapier_sent",
    "zapier_sent_at",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    # SQLite hands back naive datetimes; every stored value is UTC
    if value and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat() if value else None


def call_to_dict(call: Call) -> Dict:
    """Serialize a Call row into the plain dict used across services"""
    return {
        "call_id": call.call_id,
        "direction": call.direction,
        "from_number": call.from_number,
        "to_number": call.to_number,
        "status": call.status,
        "start_time": _iso(call.start_time),
        "end_time": _iso(call.end_time),
        "duration": call.duration,
        "recording_url": call.recording_url,
        "transcript": call.transcript,
        "transcript_url": call.transcript_url,
        "call_type": call.call_type,
        "customer_name": call.customer_name,
        "customer_zip_code": call.customer_zip_code,
        "lead_quality": call.lead_quality,
        "notes": call.notes,
        "zapier_sent": bool(call.zapier_sent),
        "zapier_sent_at": _iso(call.zapier_sent_at),
        "created_at": _iso(call.created_at),
    }


async def upsert_call(call_id: str, **fields: Any) -> Dict:
    """
    Insert a call or merge fields into the existing row for call_id.
    Non-null fields overwrite; None never erases a stored value.

    Returns:
        The merged record as a dict
    """
    if not call_id:
        raise ValueError("call_id is required")
    unknown = set(fields) - set(CALL_FIELDS)
    if unknown:
        raise ValueError(f"Unknown call fields: {sorted(unknown)}")

    async def _op():
        async with AsyncSessionLocal() as session:
            result = await session.execute(select(Call).where(Call.call_id == call_id))
            call = result.scalar_one_or_none()
            if call is None:
                call = Call(call_id=call_id, zapier_sent=False)
                session.add(call)
            for name, value in fields.items():
                if value is not None:
                    setattr(call, name, value)
            await session.commit()
            return call_to_dict(call)

    record = await db_queue.execute(_op)
    logger.debug(f"💾 Upserted call {call_id}: {list(k for k, v in fields.items() if v is not None)}")
    return record


async def get_call(call_id: str) -> Optional[Dict]:
    """Get a call by its Telnyx call id"""
    async def _op():
        async with AsyncSessionLocal() as session:
            result = await session.execute(select(Call).where(Call.call_id == call_id))
            call = result.scalar_one_or_none()
            return call_to_dict(call) if call else None

    return await db_queue.execute(_op)


async def list_calls(
    call_type: Optional[str] = None,
    page: int = 1,
    page_size: int = 50
) -> Tuple[List[Dict], int]:
    """Get paginated calls, newest first"""
    async def _op():
        async with AsyncSessionLocal() as session:
            conditions = []
            if call_type:
                conditions.append(Call.call_type == call_type)

            count_stmt = select(func.count()).select_from(Call).where(*conditions)
            count_result = await session.execute(count_stmt)
            total = count_result.scalar_one() or 0

            stmt = (
                select(Call)
                .where(*conditions)
                .order_by(desc(Call.start_time), desc(Call.id))
                .offset(max(page - 1, 0) * page_size)
                .limit(page_size)
            )
            result = await session.execute(stmt)
            return [call_to_dict(call) for call in result.scalars().all()], total

    return await db_queue.execute(_op)


async def update_customer_fields(
    call_id: str,
    customer_name: Optional[str] = None,
    customer_zip_code: Optional[str] = None,
    lead_quality: Optional[str] = None,
    notes: Optional[str] = None
) -> Optional[Dict]:
    """Update operator-entered customer fields; None if the call does not exist"""
    existing = await get_call(call_id)
    if not existing:
        return None
    return await upsert_call(
        call_id,
        customer_name=customer_name,
        customer_zip_code=customer_zip_code,
        lead_quality=lead_quality,
        notes=notes,
    )


async def mark_zapier_sent(call_id: str) -> bool:
    """
    Flip zapier_sent false -> true once.
    Returns True only for the caller that performed the flip.
    """
    async def _op():
        async with AsyncSessionLocal() as session:
            result = await session.execute(select(Call).where(Call.call_id == call_id))
            call = result.scalar_one_or_none()
            if call is None or call.zapier_sent:
                return False
            call.zapier_sent = True
            call.zapier_sent_at = utcnow()
            await session.commit()
            return True

    return await db_queue.execute(_op)
