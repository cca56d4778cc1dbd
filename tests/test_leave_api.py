"""
API tests for leave submission, review and listing
"""

import pytest
from freezegun import freeze_time
from httpx import AsyncClient

from dentaldesk.domain.leave import service as leave_service
from dentaldesk.domain.leave.workflow import SELF_APPROVAL_COMMENT
from dentaldesk.shared.errors import ForbiddenError


async def submit(client: AsyncClient, headers: dict, **fields) -> dict:
    payload = {
        "title": "Holiday",
        "leaveType": "VACATION",
        "startDate": "2024-06-03",
        "endDate": "2024-06-07",
    }
    payload.update(fields)
    resp = await client.post("/leave-requests", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def review(client: AsyncClient, headers: dict, request_id: str, **fields):
    return await client.post(f"/leave-requests/{request_id}/review", json=fields, headers=headers)


class TestSubmit:
    @pytest.mark.asyncio
    async def test_full_days_counted_inclusively(self, client, headers, users):
        body = await submit(client, headers["dentist"])
        assert body["status"] == "PENDING"
        assert body["totalDays"] == 5.0
        assert body["userId"] == users["dentist"]

    @pytest.mark.asyncio
    async def test_partial_day_fraction(self, client, headers):
        body = await submit(
            client, headers["dentist"],
            leaveType="SICK_LEAVE", startDate="2024-06-10", endDate="2024-06-10",
            isPartialDay=True, startTime="9:00", endTime="13:00",
        )
        assert body["totalDays"] == 0.5
        assert body["startTime"] == "09:00"

    @pytest.mark.asyncio
    async def test_partial_day_across_dates_rejected(self, client, headers):
        resp = await client.post(
            "/leave-requests",
            json={
                "title": "Dentist", "leaveType": "PERSONAL", "startDate": "2024-06-10", "endDate": "2024-06-11",
                "isPartialDay": True, "startTime": "09:00", "endTime": "11:00",
            },
            headers=headers["dentist"],
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_leave_type_rejected(self, client, headers):
        resp = await client.post(
            "/leave-requests",
            json={"title": "x", "leaveType": "NAP", "startDate": "2024-06-10", "endDate": "2024-06-10"},
            headers=headers["dentist"],
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_overlap_with_approved_leave_rejected(self, client, headers):
        approved = await submit(client, headers["dentist"], startDate="2024-06-03", endDate="2024-06-03")
        resp = await review(client, headers["manager"], approved["id"], action="APPROVE")
        assert resp.status_code == 200

        resp = await client.post(
            "/leave-requests",
            json={"title": "Long", "leaveType": "VACATION", "startDate": "2024-06-01", "endDate": "2024-06-05"},
            headers=headers["dentist"],
        )

        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "OVERLAPPING_REQUEST"
        assert body["details"]["conflictingRequest"]["id"] == approved["id"]

    @pytest.mark.asyncio
    async def test_overlap_with_pending_leave_rejected(self, client, headers):
        await submit(client, headers["dentist"])
        resp = await client.post(
            "/leave-requests",
            json={"title": "Again", "leaveType": "VACATION", "startDate": "2024-06-07", "endDate": "2024-06-09"},
            headers=headers["dentist"],
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_cancelled_and_denied_leave_do_not_block(self, client, headers):
        cancelled = await submit(client, headers["dentist"])
        resp = await client.post(f"/leave-requests/{cancelled['id']}/cancel", headers=headers["dentist"])
        assert resp.json()["status"] == "CANCELLED"

        denied = await submit(client, headers["dentist"])
        await review(client, headers["manager"], denied["id"], action="DENY")

        await submit(client, headers["dentist"])

    @pytest.mark.asyncio
    async def test_accepted_alternative_occupies_its_new_dates(self, client, headers):
        moved = await submit(client, headers["dentist"], startDate="2024-06-01", endDate="2024-06-05")
        await review(
            client, headers["manager"], moved["id"],
            action="PROPOSE_ALTERNATIVE", alternativeStartDate="2024-06-10", alternativeEndDate="2024-06-12",
        )
        await client.post(f"/leave-requests/{moved['id']}/respond", json={"accepted": True}, headers=headers["dentist"])

        resp = await client.post(
            "/leave-requests",
            json={"title": "Extra", "leaveType": "VACATION", "startDate": "2024-06-11", "endDate": "2024-06-11"},
            headers=headers["dentist"],
        )
        assert resp.status_code == 409
        conflicting = resp.json()["details"]["conflictingRequest"]
        assert conflicting["id"] == moved["id"]
        assert (conflicting["startDate"], conflicting["endDate"]) == ("2024-06-10", "2024-06-12")

        await submit(client, headers["dentist"], startDate="2024-06-03", endDate="2024-06-03")

    @pytest.mark.asyncio
    async def test_other_users_leave_does_not_block(self, client, headers):
        await submit(client, headers["dentist"])
        await submit(client, headers["hygienist"])


class TestReview:
    @pytest.mark.asyncio
    async def test_manager_approval_is_timestamped(self, client, headers, users):
        request = await submit(client, headers["dentist"])
        with freeze_time("2024-05-20 10:00:00", real_asyncio=True):
            resp = await review(client, headers["manager"], request["id"], action="APPROVE", reviewComments="Enjoy")

        body = resp.json()
        assert body["status"] == "APPROVED"
        assert body["reviewedById"] == users["manager"]
        assert body["reviewedAt"] == "2024-05-20T10:00:00"
        assert body["reviewedBy"]["firstName"] == "Mia"

    @pytest.mark.asyncio
    async def test_staff_cannot_review(self, client, headers):
        request = await submit(client, headers["dentist"])
        resp = await review(client, headers["hygienist"], request["id"], action="APPROVE")
        assert resp.status_code == 403
        assert resp.json()["error"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_second_review_is_invalid_transition(self, client, headers):
        request = await submit(client, headers["dentist"])
        await review(client, headers["manager"], request["id"], action="DENY")

        resp = await review(client, headers["manager"], request["id"], action="APPROVE")

        assert resp.status_code == 409
        assert resp.json()["error"] == "INVALID_TRANSITION"
        assert resp.json()["details"] == {"currentStatus": "DENIED", "requestedStatus": "APPROVED"}

    @pytest.mark.asyncio
    async def test_denied_request_cannot_be_cancelled(self, client, headers):
        request = await submit(client, headers["dentist"])
        await review(client, headers["manager"], request["id"], action="DENY")
        resp = await client.post(f"/leave-requests/{request['id']}/cancel", headers=headers["dentist"])
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_self_approval_of_personal_time(self, client, headers):
        request = await submit(client, headers["dentist"], leaveType="PERSONAL", startDate="2024-06-10", endDate="2024-06-10")

        resp = await review(
            client, headers["dentist"], request["id"], action="APPROVE", reviewComments=SELF_APPROVAL_COMMENT
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "APPROVED"

    @pytest.mark.asyncio
    async def test_self_approval_with_other_comment_forbidden(self, client, headers):
        request = await submit(client, headers["dentist"], leaveType="PERSONAL", startDate="2024-06-10", endDate="2024-06-10")
        resp = await review(client, headers["dentist"], request["id"], action="APPROVE", reviewComments="Approved")
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_alternative_negotiation(self, client, headers):
        request = await submit(client, headers["dentist"])

        resp = await review(
            client, headers["manager"], request["id"],
            action="PROPOSE_ALTERNATIVE", alternativeStartDate="2024-06-17", alternativeEndDate="2024-06-21",
        )
        assert resp.json()["status"] == "ALTERNATIVE_PROPOSED"
        assert resp.json()["hasAlternative"] is True

        resp = await client.post(
            f"/leave-requests/{request['id']}/respond", json={"accepted": True}, headers=headers["manager"]
        )
        assert resp.status_code == 403

        resp = await client.post(
            f"/leave-requests/{request['id']}/respond", json={"accepted": True}, headers=headers["dentist"]
        )
        assert resp.json()["status"] == "ALTERNATIVE_ACCEPTED"
        assert resp.json()["alternativeAccepted"] is True

    @pytest.mark.asyncio
    async def test_propose_alternative_without_dates(self, client, headers):
        request = await submit(client, headers["dentist"])
        resp = await review(client, headers["manager"], request["id"], action="PROPOSE_ALTERNATIVE")
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_request_not_found(self, client, headers):
        resp = await review(client, headers["manager"], "missing", action="APPROVE")
        assert resp.status_code == 404


class TestPersonalBlock:
    @pytest.mark.asyncio
    async def test_personal_block_is_approved_immediately(self, client, headers, users):
        resp = await client.post(
            "/leave-requests/personal-block",
            json={"title": "School run", "startDate": "2024-06-12", "endDate": "2024-06-12",
                  "isPartialDay": True, "startTime": "15:00", "endTime": "16:00"},
            headers=headers["hygienist"],
        )

        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["leaveType"] == "PERSONAL"
        assert body["status"] == "APPROVED"
        assert body["reviewedById"] == users["hygienist"]
        assert body["reviewComments"] == SELF_APPROVAL_COMMENT

    @pytest.mark.asyncio
    async def test_failed_self_approval_leaves_nothing_behind(self, client, headers, monkeypatch):
        def refuse(request, *args, **kwargs):
            raise ForbiddenError("Only managers can review leave requests")

        monkeypatch.setattr(leave_service, "apply_review", refuse)

        resp = await client.post(
            "/leave-requests/personal-block",
            json={"title": "School run", "startDate": "2024-06-12", "endDate": "2024-06-12"},
            headers=headers["hygienist"],
        )

        assert resp.status_code == 403
        own = (await client.get("/leave-requests", headers=headers["hygienist"])).json()["leaveRequests"]
        assert own == []


class TestListing:
    @pytest.mark.asyncio
    async def test_views(self, client, headers):
        mine = await submit(client, headers["dentist"])
        other = await submit(client, headers["hygienist"], startDate="2024-07-01", endDate="2024-07-02")
        await review(client, headers["manager"], other["id"], action="APPROVE")

        own = (await client.get("/leave-requests", headers=headers["dentist"])).json()["leaveRequests"]
        assert [r["id"] for r in own] == [mine["id"]]

        calendar = (await client.get("/leave-requests?view=calendar", headers=headers["dentist"])).json()
        assert [r["id"] for r in calendar["leaveRequests"]] == [other["id"]]

        everything = (await client.get("/leave-requests?view=manager", headers=headers["manager"])).json()
        assert {r["id"] for r in everything["leaveRequests"]} == {mine["id"], other["id"]}

    @pytest.mark.asyncio
    async def test_manager_view_needs_manager(self, client, headers):
        resp = await client.get("/leave-requests?view=manager", headers=headers["dentist"])
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_approved_filter_includes_accepted_alternatives(self, client, headers):
        approved = await submit(client, headers["dentist"])
        await review(client, headers["manager"], approved["id"], action="APPROVE")

        alt = await submit(client, headers["dentist"], startDate="2024-08-01", endDate="2024-08-02")
        await review(
            client, headers["manager"], alt["id"],
            action="PROPOSE_ALTERNATIVE", alternativeStartDate="2024-08-05", alternativeEndDate="2024-08-06",
        )
        await client.post(f"/leave-requests/{alt['id']}/respond", json={"accepted": True}, headers=headers["dentist"])

        await submit(client, headers["dentist"], startDate="2024-09-01", endDate="2024-09-01")

        resp = await client.get("/leave-requests?status=approved", headers=headers["dentist"])
        assert {r["id"] for r in resp.json()["leaveRequests"]} == {approved["id"], alt["id"]}

    @pytest.mark.asyncio
    async def test_calendar_events(self, client, headers, users):
        request = await submit(client, headers["dentist"], startDate="2024-06-03", endDate="2024-06-04")
        await review(client, headers["manager"], request["id"], action="APPROVE")

        events = (await client.get("/leave-requests/events", headers=headers["hygienist"])).json()

        assert [e["id"] for e in events] == [f"leave-{request['id']}-day-0", f"leave-{request['id']}-day-1"]
        assert events[0]["title"] == "🚫 Dan Molar - Vacation"
        assert events[0]["resourceId"] == users["dentist"]

    @pytest.mark.asyncio
    async def test_leave_day_marker(self, client, headers, users):
        request = await submit(client, headers["dentist"], startDate="2024-06-03", endDate="2024-06-04")
        await review(client, headers["manager"], request["id"], action="APPROVE")

        async def has_leave(day, **params):
            resp = await client.get(f"/leave-requests/days/{day}", params=params, headers=headers["hygienist"])
            assert resp.status_code == 200, resp.text
            return resp.json()["hasLeave"]

        assert await has_leave("2024-06-04") is True
        assert await has_leave("2024-06-04", resource_id=users["dentist"]) is True
        assert await has_leave("2024-06-05") is False
        assert await has_leave("2024-06-04", resource_id=users["hygienist"]) is False
