"""Tests for hire request API routes."""

import pytest

HOUSEHELP_ID = "hp_TEST_ONLY_001"


@pytest.fixture
def create_request(client, household_headers):
    """Send a hire request from the test household to the test househelp."""

    def _create(**overrides):
        body = {
            "househelp_id": HOUSEHELP_ID,
            "job_type": "live-in",
            "salary_offered": 15000,
            "salary_frequency": "monthly",
            "terms_accepted": True,
        }
        body.update(overrides)
        return client.post("/api/v1/hire-requests", json=body, headers=household_headers)

    return _create


class TestCreateHireRequest:
    """POST /api/v1/hire-requests"""

    def test_create_success(self, create_request):
        response = create_request(special_requirements="Must love dogs")

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["househelp_id"] == HOUSEHELP_ID
        assert data["salary_offered"] == "15000"
        assert data["awaiting_response_from"] == "househelp"
        assert data["current_terms"]["proposed_by"] == "household"
        assert data["negotiations"] == []
        assert data["expires_at"] is not None

    def test_zero_salary_is_validation_error(self, create_request):
        response = create_request(salary_offered=0)

        assert response.status_code == 422
        assert response.json()["kind"] == "validation_error"

    def test_terms_must_be_accepted(self, create_request):
        response = create_request(terms_accepted=False)

        assert response.status_code == 422
        assert "terms" in response.json()["detail"].lower()

    def test_unknown_job_type_is_validation_error(self, create_request):
        response = create_request(job_type="astronaut")

        assert response.status_code == 422
        assert response.json()["kind"] == "validation_error"

    def test_duplicate_open_request(self, create_request):
        first = create_request()
        second = create_request(salary_offered=16000)

        assert second.status_code == 409
        data = second.json()
        assert data["kind"] == "duplicate_request"
        assert data["refresh"] is True
        assert data["existing_id"] == first.json()["id"]

    def test_househelp_cannot_create(self, client, househelp_headers):
        response = client.post(
            "/api/v1/hire-requests",
            json={
                "househelp_id": HOUSEHELP_ID,
                "job_type": "live-in",
                "salary_offered": 15000,
                "terms_accepted": True,
            },
            headers=househelp_headers,
        )
        assert response.status_code == 403

    def test_contact_details_are_redacted(self, create_request):
        response = create_request(special_requirements="Call me on +254 712 345 678")

        assert response.status_code == 201
        assert "712" not in response.json()["special_requirements"]
        assert "[REDACTED-PHONE]" in response.json()["special_requirements"]


class TestNegotiationRoutes:
    """Counter-offers alternate between the parties."""

    def test_counter_offer_flow(self, client, create_request, household_headers, househelp_headers):
        request_id = create_request().json()["id"]

        countered = client.post(
            f"/api/v1/hire-requests/{request_id}/negotiate",
            json={"salary_offered": 18000, "message": "I have five years of experience"},
            headers=househelp_headers,
        )
        assert countered.status_code == 200
        data = countered.json()
        assert data["status"] == "negotiating"
        assert data["current_terms"]["salary_offered"] == "18000"
        assert data["awaiting_response_from"] == "household"

        again = client.post(
            f"/api/v1/hire-requests/{request_id}/negotiate",
            json={"salary_offered": 19000},
            headers=househelp_headers,
        )
        assert again.status_code == 409
        assert again.json()["kind"] == "not_your_turn"
        assert again.json()["refresh"] is True

        reply = client.post(
            f"/api/v1/hire-requests/{request_id}/negotiate",
            json={"salary_offered": 16500},
            headers=household_headers,
        )
        assert reply.status_code == 200

        log = client.get(
            f"/api/v1/hire-requests/{request_id}/negotiations", headers=household_headers
        )
        assert [n["proposed_by"] for n in log.json()] == ["househelp", "household"]

    def test_household_cannot_counter_its_own_offer(self, client, create_request, household_headers):
        request_id = create_request().json()["id"]

        response = client.post(
            f"/api/v1/hire-requests/{request_id}/negotiate",
            json={"salary_offered": 14000},
            headers=household_headers,
        )
        assert response.status_code == 409
        assert response.json()["kind"] == "not_your_turn"

    def test_invalid_counter_salary(self, client, create_request, househelp_headers):
        request_id = create_request().json()["id"]

        response = client.post(
            f"/api/v1/hire-requests/{request_id}/negotiate",
            json={"salary_offered": -5},
            headers=househelp_headers,
        )
        assert response.status_code == 422


class TestRequestLifecycleRoutes:
    """Accept, decline, withdraw and visibility."""

    def test_get_by_non_participant_is_404(self, client, create_request, other_household_headers):
        request_id = create_request().json()["id"]

        response = client.get(f"/api/v1/hire-requests/{request_id}", headers=other_household_headers)

        assert response.status_code == 404

    def test_list_for_each_side(self, client, create_request, household_headers, househelp_headers):
        create_request()

        sent = client.get("/api/v1/hire-requests", headers=household_headers)
        received = client.get("/api/v1/hire-requests", headers=househelp_headers)
        declined = client.get("/api/v1/hire-requests?status=declined", headers=household_headers)

        assert sent.json()["total"] == 1
        assert received.json()["total"] == 1
        assert declined.json()["total"] == 0

    def test_househelp_accepts(self, client, create_request, household_headers, househelp_headers):
        request_id = create_request().json()["id"]

        response = client.post(
            f"/api/v1/hire-requests/{request_id}/accept", headers=househelp_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        assert response.json()["awaiting_response_from"] is None

        # Acceptance locks the profile to the household
        status = client.get(
            f"/api/v1/shortlists/unlock-status/{HOUSEHELP_ID}", headers=household_headers
        )
        assert status.json()["unlocked_by_me"] is True

    def test_accept_own_offer_is_not_your_turn(self, client, create_request, household_headers):
        request_id = create_request().json()["id"]

        response = client.post(
            f"/api/v1/hire-requests/{request_id}/accept", headers=household_headers
        )
        assert response.status_code == 409
        assert response.json()["kind"] == "not_your_turn"

    def test_decline_requires_reason(self, client, create_request, househelp_headers):
        request_id = create_request().json()["id"]

        response = client.post(
            f"/api/v1/hire-requests/{request_id}/decline", json={}, headers=househelp_headers
        )
        assert response.status_code == 422

    def test_decline(self, client, create_request, househelp_headers):
        request_id = create_request().json()["id"]

        response = client.post(
            f"/api/v1/hire-requests/{request_id}/decline",
            json={"reason": "Already employed"},
            headers=househelp_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "declined"
        assert response.json()["decline_reason"] == "Already employed"

        again = client.post(
            f"/api/v1/hire-requests/{request_id}/accept", headers=househelp_headers
        )
        assert again.status_code == 409
        assert again.json()["kind"] == "invalid_transition"

    def test_withdraw(self, client, create_request, household_headers, househelp_headers):
        request_id = create_request().json()["id"]

        by_househelp = client.post(
            f"/api/v1/hire-requests/{request_id}/withdraw", headers=househelp_headers
        )
        assert by_househelp.status_code == 403

        by_household = client.post(
            f"/api/v1/hire-requests/{request_id}/withdraw", headers=household_headers
        )
        assert by_household.status_code == 200
        assert by_household.json()["status"] == "withdrawn"

        # The pair is free for a new request
        assert create_request().status_code == 201


class TestFinalizeAndEligibility:
    """Accepted requests become contracts; contracts block new requests."""

    def test_finalize_flow(self, client, create_request, household_headers, househelp_headers):
        request_id = create_request().json()["id"]
        client.post(
            f"/api/v1/hire-requests/{request_id}/negotiate",
            json={"salary_offered": 18000},
            headers=househelp_headers,
        )
        client.post(f"/api/v1/hire-requests/{request_id}/accept", headers=household_headers)

        finalized = client.post(
            f"/api/v1/hire-requests/{request_id}/finalize",
            json={"notes": "Starts Monday"},
            headers=household_headers,
        )
        assert finalized.status_code == 201
        contract = finalized.json()
        assert contract["status"] == "active"
        assert contract["actual_salary"] == "18000"
        assert contract["hire_request_id"] == request_id

        again = client.post(
            f"/api/v1/hire-requests/{request_id}/finalize", json={}, headers=household_headers
        )
        assert again.status_code == 409
        assert again.json()["kind"] == "duplicate_active_contract"
        assert again.json()["existing_id"] == contract["id"]

        eligibility = client.get(
            f"/api/v1/hire-requests/eligibility/{HOUSEHELP_ID}", headers=household_headers
        )
        assert eligibility.json()["can_hire"] is False
        assert eligibility.json()["reason"] == "active_contract"
        assert eligibility.json()["existing_id"] == contract["id"]

        blocked = create_request()
        assert blocked.status_code == 409
        assert blocked.json()["kind"] == "duplicate_request"

    def test_accepted_request_blocks_until_finalized(
        self, client, create_request, household_headers, househelp_headers
    ):
        request_id = create_request().json()["id"]
        client.post(f"/api/v1/hire-requests/{request_id}/accept", headers=househelp_headers)

        blocked = create_request(salary_offered=20000)
        assert blocked.status_code == 409
        assert blocked.json()["kind"] == "duplicate_request"
        assert blocked.json()["existing_id"] == request_id

        eligibility = client.get(
            f"/api/v1/hire-requests/eligibility/{HOUSEHELP_ID}", headers=household_headers
        )
        assert eligibility.json()["reason"] == "open_request"
        assert eligibility.json()["existing_id"] == request_id

    def test_finalize_pending_request_fails(self, client, create_request, household_headers):
        request_id = create_request().json()["id"]

        response = client.post(
            f"/api/v1/hire-requests/{request_id}/finalize", json={}, headers=household_headers
        )
        assert response.status_code == 409
        assert response.json()["kind"] == "invalid_source_state"

    def test_eligibility_with_open_request(self, client, create_request, household_headers):
        request_id = create_request().json()["id"]

        response = client.get(
            f"/api/v1/hire-requests/eligibility/{HOUSEHELP_ID}", headers=household_headers
        )
        assert response.json() == {
            "can_hire": False,
            "can_shortlist": True,
            "reason": "open_request",
            "existing_id": request_id,
        }
