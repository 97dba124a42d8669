from sqlalchemy import Boolean, Column, String, DateTime, Integer, Text, Index
from datetime import datetime, timezone
from app.database.connection import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Call(Base):
    __tablename__ = "calls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    call_id = Column(String, unique=True, nullable=False, index=True)  # Telnyx call_control_id
    direction = Column(String, nullable=True)  # 'inbound' | 'outbound'
    from_number = Column(String, nullable=True)
    to_number = Column(String, nullable=True)
    status = Column(String, nullable=True, index=True)  # 'initiated', 'answered', 'completed'
    start_time = Column(DateTime(timezone=True), nullable=True, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, nullable=True)  # Seconds, measured locally from answer to hangup
    recording_url = Column(Text, nullable=True)  # Telnyx URL (expires) or permanent mirror
    transcript = Column(Text, nullable=True)
    transcript_url = Column(Text, nullable=True)
    # 'customer_inquiry', 'human_representative', 'human_transfer',
    # 'human_connected', 'customer_followup', 'contractor_outreach'
    call_type = Column(String, nullable=True, index=True)
    customer_name = Column(String, nullable=True)
    customer_zip_code = Column(String, nullable=True)
    lead_quality = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    zapier_sent = Column(Boolean, default=False, nullable=False)
    zapier_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index('idx_calls_type_start', 'call_type', 'start_time'),
    )
