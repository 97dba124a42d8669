"""
Telnyx webhook envelope - decoded once at the dispatch boundary
Telnyx posts {"data": {"event_type": ..., "payload": {...}}}; older/test
senders put the same fields at the top level. Handlers only see TelnyxEvent.
"""
from pydantic import BaseModel
from typing import Any, Dict, Optional


def _text(value: Any) -> Optional[str]:
    """Scalars become strings; lists, objects and null become None"""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


class TelnyxEvent(BaseModel):
    event_type: Optional[str] = None
    call_id: Optional[str] = None
    direction: Optional[str] = None  # 'incoming' | 'outgoing'
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    digit: Optional[str] = None
    recording_url: Optional[str] = None

    @property
    def is_incoming(self) -> bool:
        return self.direction == "incoming"

    @classmethod
    def from_body(cls, body: Optional[Dict[str, Any]]) -> "TelnyxEvent":
        """Normalize a raw webhook body into a typed event"""
        body = body if isinstance(body, dict) else {}
        data = body.get("data")
        if not isinstance(data, dict):
            data = body
        payload = data.get("payload")
        if not isinstance(payload, dict):
            payload = {}

        def raw(name: str) -> Any:
            value = payload.get(name)
            return value if value is not None else data.get(name)

        def field(name: str) -> Optional[str]:
            return _text(raw(name))

        recording_urls = raw("recording_urls") or {}
        public_urls = raw("public_recording_urls") or {}
        recording_url = None
        if isinstance(recording_urls, dict):
            recording_url = _text(recording_urls.get("mp3"))
        if not recording_url and isinstance(public_urls, dict):
            recording_url = _text(public_urls.get("mp3"))

        return cls(
            event_type=_text(data.get("event_type")),
            call_id=field("call_control_id"),
            direction=field("direction"),
            from_number=field("from"),
            to_number=field("to"),
            digit=field("digit"),
            recording_url=recording_url,
        )
