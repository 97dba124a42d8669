"""
Test Case Suite: Operator Call API
Test ID Range: TC-100 to TC-113

This test suite validates call history, customer updates, operator outbound
calls and the manual Zapier trigger.
"""

import pytest
from unittest.mock import AsyncMock
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient
from conftest import BUSINESS_NUMBER, CUSTOMER_NUMBER
from app.services import call_service
from app.controllers import call_controller


async def seed_calls():
    base = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
    await call_service.upsert_call(
        "inquiry-1", direction="inbound", from_number=CUSTOMER_NUMBER, to_number=BUSINESS_NUMBER,
        status="completed", start_time=base, call_type="customer_inquiry",
        recording_url="https://rec.example/inquiry-1.mp3"
    )
    await call_service.upsert_call(
        "connected-1", direction="inbound", from_number=CUSTOMER_NUMBER, to_number=BUSINESS_NUMBER,
        status="completed", start_time=base + timedelta(hours=1), call_type="human_connected"
    )


class TestCallHistory:
    """
    Test Case TC-100: Get Call History
    Description: Verify paginated history, newest first
    Expected Result: 200 with items and total
    """
    @pytest.mark.asyncio
    async def test_tc100_list_calls(self, client: AsyncClient):
        """TC-100: Get call history"""
        await seed_calls()
        response = await client.get("/api/calls")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["page"] == 1
        assert [item["call_id"] for item in data["items"]] == ["connected-1", "inquiry-1"]

    """
    Test Case TC-101: Filter Call History by Type
    Description: Verify call_type query filter
    Expected Result: Only matching calls returned
    """
    @pytest.mark.asyncio
    async def test_tc101_filter_by_type(self, client: AsyncClient):
        """TC-101: Filter call history by type"""
        await seed_calls()
        response = await client.get("/api/calls", params={"call_type": "customer_inquiry"})

        assert response.status_code == 200
        assert [item["call_id"] for item in response.json()["items"]] == ["inquiry-1"]

    """
    Test Case TC-102: Unknown Call Type Filter
    Description: Verify an unknown call_type is rejected
    Expected Result: 400 with message
    """
    @pytest.mark.asyncio
    async def test_tc102_unknown_call_type(self, client: AsyncClient):
        """TC-102: Unknown call type filter"""
        response = await client.get("/api/calls", params={"call_type": "spam"})
        assert response.status_code == 400
        assert "spam" in response.json()["message"]

    """
    Test Case TC-103: Get Call Details
    Description: Verify a single call can be read back
    Expected Result: 200 with the record
    """
    @pytest.mark.asyncio
    async def test_tc103_get_call(self, client: AsyncClient):
        """TC-103: Get call details"""
        await seed_calls()
        response = await client.get("/api/calls/inquiry-1")

        assert response.status_code == 200
        data = response.json()
        assert data["call_id"] == "inquiry-1"
        assert data["recording_url"] == "https://rec.example/inquiry-1.mp3"
        assert data["zapier_sent"] is False

    """
    Test Case TC-104: Get Unknown Call
    Description: Verify a missing call returns 404
    Expected Result: 404 with message
    """
    @pytest.mark.asyncio
    async def test_tc104_get_missing_call(self, client: AsyncClient):
        """TC-104: Get unknown call"""
        response = await client.get("/api/calls/nope")
        assert response.status_code == 404
        assert response.json() == {"message": "Call not found"}


class TestCustomerUpdate:
    """
    Test Case TC-105: Update Customer Details
    Description: Verify operator-entered fields are merged into the record
    Expected Result: 200 with updated fields; untouched fields kept
    """
    @pytest.mark.asyncio
    async def test_tc105_update_customer(self, client: AsyncClient):
        """TC-105: Update customer details"""
        await seed_calls()
        response = await client.patch("/api/calls/inquiry-1/customer", json={
            "customer_name": "Jordan Lee",
            "customer_zip_code": "33101",
            "lead_quality": "hot"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["customer_name"] == "Jordan Lee"
        assert data["customer_zip_code"] == "33101"
        assert data["status"] == "completed"

    """
    Test Case TC-106: Update Unknown Call
    Description: Verify updating a missing call returns 404
    Expected Result: 404
    """
    @pytest.mark.asyncio
    async def test_tc106_update_missing(self, client: AsyncClient):
        """TC-106: Update unknown call"""
        response = await client.patch("/api/calls/nope/customer", json={"customer_name": "X"})
        assert response.status_code == 404


class TestOutboundCalls:
    """
    Test Case TC-107: Place Follow-up Call
    Description: Verify an operator follow-up call is dialed and stored
    Expected Result: 201 with call id and E.164 number
    """
    @pytest.mark.asyncio
    async def test_tc107_outbound_call(self, client: AsyncClient, telnyx):
        """TC-107: Place follow-up call"""
        telnyx.create_outbound_call.return_value = "followup-1"
        response = await client.post("/api/calls/outbound", json={
            "phone_number": "(555) 123-4567",
            "call_type": "customer_followup",
            "notes": "Check drying equipment"
        })

        assert response.status_code == 201
        data = response.json()
        assert data["call_id"] == "followup-1"
        assert data["to_number"] == CUSTOMER_NUMBER
        assert data["call_type"] == "customer_followup"
        telnyx.create_outbound_call.assert_awaited_once_with(CUSTOMER_NUMBER)
        assert (await call_service.get_call("followup-1"))["notes"] == "Check drying equipment"

    """
    Test Case TC-108: Outbound Call With Invalid Number
    Description: Verify numbers that cannot be normalized are rejected
    Expected Result: 400 and no dial
    """
    @pytest.mark.asyncio
    async def test_tc108_outbound_invalid_number(self, client: AsyncClient, telnyx):
        """TC-108: Outbound call with invalid number"""
        response = await client.post("/api/calls/outbound", json={
            "phone_number": "call-me-maybe",
            "call_type": "contractor_outreach"
        })
        assert response.status_code == 400
        telnyx.create_outbound_call.assert_not_awaited()

    """
    Test Case TC-109: Outbound Call Refused by Telnyx
    Description: Verify a refused dial is reported as a gateway error
    Expected Result: 502
    """
    @pytest.mark.asyncio
    async def test_tc109_outbound_refused(self, client: AsyncClient, telnyx):
        """TC-109: Outbound call refused by Telnyx"""
        telnyx.create_outbound_call.return_value = None
        response = await client.post("/api/calls/outbound", json={
            "phone_number": "+15551234567",
            "call_type": "contractor_outreach"
        })
        assert response.status_code == 502


class TestZapierTrigger:
    """
    Test Case TC-110: Trigger Without Zapier Configured
    Description: Verify the manual trigger requires ZAPIER_WEBHOOK_URL
    Expected Result: 400
    """
    @pytest.mark.asyncio
    async def test_tc110_trigger_not_configured(self, client: AsyncClient):
        """TC-110: Trigger without Zapier configured"""
        await seed_calls()
        response = await client.post("/api/calls/inquiry-1/zapier")
        assert response.status_code == 400

    """
    Test Case TC-111: Trigger Sends Once
    Description: Verify a manual trigger delivers and a second trigger reports already sent
    Expected Result: sent true, then sent false with message; one POST
    """
    @pytest.mark.asyncio
    async def test_tc111_trigger_once(self, client: AsyncClient, zapier_endpoint):
        """TC-111: Trigger sends once"""
        await seed_calls()
        first = await client.post("/api/calls/connected-1/zapier")
        second = await client.post("/api/calls/connected-1/zapier")

        assert first.status_code == 200
        assert first.json()["sent"] is True
        assert second.status_code == 200
        assert second.json() == {"call_id": "connected-1", "sent": False, "message": "Already sent to Zapier"}
        assert len(zapier_endpoint.requests) == 1

    """
    Test Case TC-112: Trigger Failures
    Description: Verify unknown calls return 404 and a refused delivery returns 502
    Expected Result: 404, then 502
    """
    @pytest.mark.asyncio
    async def test_tc112_trigger_failures(self, client: AsyncClient, zapier_endpoint):
        """TC-112: Trigger failures"""
        await seed_calls()
        missing = await client.post("/api/calls/nope/zapier")
        assert missing.status_code == 404

        zapier_endpoint.responses = [500] * 10
        refused = await client.post("/api/calls/inquiry-1/zapier")
        assert refused.status_code == 502


class TestStoreFailures:
    """
    Test Case TC-113: Store Errors Become 500 With Message
    Description: A database failure on read, update or trigger is reported in the API error shape
    Expected Result: 500 with message on every route
    """
    @pytest.mark.asyncio
    async def test_tc113_store_errors(self, client: AsyncClient, zapier_endpoint, monkeypatch):
        """TC-113: Store errors become 500 with message"""
        locked = AsyncMock(side_effect=RuntimeError("database is locked"))
        monkeypatch.setattr(call_controller, "get_call", locked)
        monkeypatch.setattr(call_controller, "update_customer_fields", locked)

        responses = [
            await client.get("/api/calls/abc"),
            await client.patch("/api/calls/abc/customer", json={"customer_name": "X"}),
            await client.post("/api/calls/abc/zapier"),
        ]

        for response in responses:
            assert response.status_code == 500
            assert "database is locked" in response.json()["message"]
        assert zapier_endpoint.requests == []
