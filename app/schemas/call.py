from pydantic import BaseModel, Field
from typing import Optional, List, Literal


class CallResponse(BaseModel):
    """Response schema for call"""
    call_id: str
    direction: Optional[str] = None  # 'inbound' | 'outbound'
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    status: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None
    recording_url: Optional[str] = None
    transcript: Optional[str] = None
    transcript_url: Optional[str] = None
    call_type: Optional[str] = None
    customer_name: Optional[str] = None
    customer_zip_code: Optional[str] = None
    lead_quality: Optional[str] = None
    notes: Optional[str] = None
    zapier_sent: bool = False
    zapier_sent_at: Optional[str] = None
    created_at: Optional[str] = None

    class Config:
        from_attributes = True


class PaginatedCallsResponse(BaseModel):
    """Response schema for paginated calls"""
    items: List[CallResponse]
    total: int
    page: int
    page_size: int


class CallCustomerUpdateRequest(BaseModel):
    """Operator-entered customer details for a call"""
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_zip_code: Optional[str] = Field(None, max_length=20)
    lead_quality: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class OutboundCallRequest(BaseModel):
    """Request schema for an operator-placed outbound call"""
    phone_number: str = Field(..., min_length=10, description="Phone number to call (E.164 format)")
    call_type: Literal["customer_followup", "contractor_outreach"] = "customer_followup"
    notes: Optional[str] = None


class OutboundCallResponse(BaseModel):
    call_id: str
    to_number: str
    from_number: Optional[str] = None
    call_type: str
    status: str


class ZapierTriggerResponse(BaseModel):
    call_id: str
    sent: bool
    message: str
