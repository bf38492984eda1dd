"""Tests for hire contract API routes."""

import pytest

HOUSEHELP_ID = "hp_TEST_ONLY_001"


@pytest.fixture
def contract_id(client, household_headers, househelp_headers):
    """An active contract between the test household and househelp."""
    created = client.post(
        "/api/v1/hire-requests",
        json={
            "househelp_id": HOUSEHELP_ID,
            "job_type": "day-worker",
            "salary_offered": 800,
            "salary_frequency": "daily",
            "terms_accepted": True,
        },
        headers=household_headers,
    )
    request_id = created.json()["id"]
    client.post(f"/api/v1/hire-requests/{request_id}/accept", headers=househelp_headers)
    finalized = client.post(
        f"/api/v1/hire-requests/{request_id}/finalize", json={}, headers=househelp_headers
    )
    assert finalized.status_code == 201
    return finalized.json()["id"]


class TestContractReads:
    """GET endpoints."""

    def test_list_for_both_parties(self, client, contract_id, household_headers, househelp_headers):
        for headers in (household_headers, househelp_headers):
            response = client.get("/api/v1/hire-contracts", headers=headers)
            assert response.status_code == 200
            assert [c["id"] for c in response.json()["contracts"]] == [contract_id]

    def test_status_filter(self, client, contract_id, household_headers):
        response = client.get("/api/v1/hire-contracts?status=completed", headers=household_headers)
        assert response.json()["total"] == 0

    def test_get_contract(self, client, contract_id, househelp_headers):
        response = client.get(f"/api/v1/hire-contracts/{contract_id}", headers=househelp_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "active"
        assert data["salary_frequency"] == "daily"
        assert data["job_type"] == "day-worker"

    def test_non_participant_gets_404(self, client, contract_id, other_household_headers):
        response = client.get(
            f"/api/v1/hire-contracts/{contract_id}", headers=other_household_headers
        )
        assert response.status_code == 404


class TestContractTransitions:
    """Completion and termination are terminal."""

    def test_complete(self, client, contract_id, household_headers):
        response = client.post(
            f"/api/v1/hire-contracts/{contract_id}/complete", headers=household_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["contract_end_date"] is not None

        again = client.post(
            f"/api/v1/hire-contracts/{contract_id}/complete", headers=household_headers
        )
        assert again.status_code == 409
        assert again.json()["kind"] == "invalid_transition"

    def test_terminate_requires_reason(self, client, contract_id, household_headers):
        response = client.post(
            f"/api/v1/hire-contracts/{contract_id}/terminate", json={}, headers=household_headers
        )
        assert response.status_code == 422

    def test_terminate_releases_profile(self, client, contract_id, household_headers):
        before = client.get(
            f"/api/v1/shortlists/unlock-status/{HOUSEHELP_ID}", headers=household_headers
        )
        assert before.json()["unlocked_by_me"] is True

        response = client.post(
            f"/api/v1/hire-contracts/{contract_id}/terminate",
            json={"reason": "non-payment"},
            headers=household_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "terminated"
        assert response.json()["termination_reason"] == "non-payment"
        assert response.json()["terminated_by"] == "household"

        after = client.get(
            f"/api/v1/shortlists/unlock-status/{HOUSEHELP_ID}", headers=household_headers
        )
        assert after.json()["unlocked"] is False

    def test_new_request_allowed_after_termination(
        self, client, contract_id, household_headers, househelp_headers
    ):
        client.post(
            f"/api/v1/hire-contracts/{contract_id}/terminate",
            json={"reason": "Moved house"},
            headers=househelp_headers,
        )

        response = client.post(
            "/api/v1/hire-requests",
            json={
                "househelp_id": HOUSEHELP_ID,
                "job_type": "part-time",
                "salary_offered": 500,
                "salary_frequency": "daily",
                "terms_accepted": True,
            },
            headers=household_headers,
        )
        assert response.status_code == 201


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
