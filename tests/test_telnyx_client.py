"""
Test Case Suite: Telnyx Call Control Client
Test ID Range: TC-030 to TC-035

This test suite validates the REST requests sent to Telnyx and how failures
are reported back to callers.
"""

import json
import httpx
import pytest
from types import SimpleNamespace
from app.services.telnyx_service import client as telnyx


@pytest.fixture
def telnyx_api(monkeypatch, fast_settings):
    """Capture Telnyx requests; set api.status / api.body to shape the reply"""
    api = SimpleNamespace(
        requests=[],
        status=200,
        body={"data": {"call_control_id": "v3:new-leg"}},
        error=None
    )

    def handler(request: httpx.Request) -> httpx.Response:
        api.requests.append(request)
        if api.error:
            raise api.error
        return httpx.Response(api.status, json=api.body)

    monkeypatch.setattr(
        telnyx,
        "_http_client",
        lambda: httpx.AsyncClient(
            base_url=fast_settings.TELNYX_API_BASE,
            headers=telnyx.telnyx_headers(),
            transport=httpx.MockTransport(handler)
        )
    )
    return api


class TestCallActions:
    """
    Test Case TC-030: Speak Posts Text-to-Speech Action
    Description: Verify the action path, bearer auth and TTS payload
    Expected Result: POST /calls/{id}/actions/speak with voice settings
    """
    @pytest.mark.asyncio
    async def test_tc030_speak(self, telnyx_api):
        """TC-030: Speak posts text-to-speech action"""
        assert await telnyx.speak("v3:abc", "Hello") is True

        request = telnyx_api.requests[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.url.path.endswith("/calls/v3:abc/actions/speak")
        assert request.headers["Authorization"] == "Bearer KEY_TEST"
        assert body["payload"] == "Hello"
        assert "voice" in body

    """
    Test Case TC-031: Bridge Sends the Other Leg
    Description: Verify the bridge body names the second call control id
    Expected Result: call_control_id of the other leg in body
    """
    @pytest.mark.asyncio
    async def test_tc031_bridge(self, telnyx_api):
        """TC-031: Bridge sends the other leg"""
        assert await telnyx.bridge_calls("customer", "human") is True

        request = telnyx_api.requests[0]
        assert request.url.path.endswith("/calls/customer/actions/bridge")
        assert json.loads(request.content) == {"call_control_id": "human"}

    """
    Test Case TC-032: Non-2xx Response Returns False
    Description: Verify that Telnyx errors are reported as False, not raised
    Expected Result: False
    """
    @pytest.mark.asyncio
    async def test_tc032_error_status(self, telnyx_api):
        """TC-032: Non-2xx response returns False"""
        telnyx_api.status = 422
        telnyx_api.body = {"errors": [{"detail": "Call has already ended"}]}
        assert await telnyx.hangup_call("gone") is False

    """
    Test Case TC-033: Network Failure Returns False
    Description: Verify that transport errors are contained
    Expected Result: False
    """
    @pytest.mark.asyncio
    async def test_tc033_network_failure(self, telnyx_api):
        """TC-033: Network failure returns False"""
        telnyx_api.error = httpx.ConnectError("unreachable")
        assert await telnyx.answer_call("abc") is False

    """
    Test Case TC-034: Missing Call Id Skips the Request
    Description: Verify that no request is made without a call id
    Expected Result: False and no request
    """
    @pytest.mark.asyncio
    async def test_tc034_missing_call_id(self, telnyx_api):
        """TC-034: Missing call id skips the request"""
        assert await telnyx.speak("", "Hello") is False
        assert telnyx_api.requests == []


class TestOutboundCall:
    """
    Test Case TC-035: Dial Returns the New Leg Id
    Description: Verify dial body (connection, webhook URL, ring timeout) and parsed call id
    Expected Result: call_control_id from the response; None when Telnyx refuses
    """
    @pytest.mark.asyncio
    async def test_tc035_create_outbound_call(self, telnyx_api):
        """TC-035: Dial returns the new leg id"""
        call_id = await telnyx.create_outbound_call("+15550001111")

        body = json.loads(telnyx_api.requests[0].content)
        assert call_id == "v3:new-leg"
        assert telnyx_api.requests[0].url.path.endswith("/calls")
        assert body["to"] == "+15550001111"
        assert body["from"] == "+15557654321"
        assert body["connection_id"] == "conn-123"
        assert body["webhook_url"] == "https://router.example.com/webhooks/calls"
        assert body["timeout_secs"] == 30

        telnyx_api.status = 403
        assert await telnyx.create_outbound_call("+15550001111") is None
