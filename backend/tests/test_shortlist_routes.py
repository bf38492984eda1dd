"""Tests for shortlist API routes."""

HOUSEHOLD_ID = "hh_TEST_ONLY_001"


class TestShortlistAuth:
    """Identity and role checks."""

    def test_requires_token(self, client):
        response = client.get("/api/v1/shortlists/mine")
        assert response.status_code == 401

    def test_rejects_bad_token(self, client):
        response = client.get(
            "/api/v1/shortlists/mine", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_househelp_cannot_shortlist(self, client, househelp_headers):
        response = client.post(
            "/api/v1/shortlists", json={"profile_id": "hp-1"}, headers=househelp_headers
        )
        assert response.status_code == 403


class TestShortlistRoutes:
    """Add, list, remove and check shortlist entries."""

    def test_add_entry(self, client, household_headers):
        response = client.post(
            "/api/v1/shortlists", json={"profile_id": "hp-1"}, headers=household_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["household_id"] == HOUSEHOLD_ID
        assert data["profile_id"] == "hp-1"
        assert data["is_locked"] is False

    def test_add_twice_returns_same_entry(self, client, household_headers):
        first = client.post(
            "/api/v1/shortlists", json={"profile_id": "hp-1"}, headers=household_headers
        )
        second = client.post(
            "/api/v1/shortlists", json={"profile_id": "hp-1"}, headers=household_headers
        )

        assert second.status_code == 201
        assert second.json()["created_at"] == first.json()["created_at"]

    def test_list_mine(self, client, household_headers):
        for profile_id in ("hp-1", "hp-2"):
            client.post(
                "/api/v1/shortlists", json={"profile_id": profile_id}, headers=household_headers
            )

        response = client.get("/api/v1/shortlists/mine", headers=household_headers)

        assert response.status_code == 200
        data = response.json()
        assert {e["profile_id"] for e in data["entries"]} == {"hp-1", "hp-2"}
        assert data["limit"] == 20
        assert data["offset"] == 0

    def test_exists(self, client, household_headers):
        client.post("/api/v1/shortlists", json={"profile_id": "hp-1"}, headers=household_headers)

        yes = client.get("/api/v1/shortlists/exists/hp-1", headers=household_headers)
        no = client.get("/api/v1/shortlists/exists/hp-2", headers=household_headers)

        assert yes.json() == {"exists": True}
        assert no.json() == {"exists": False}

    def test_remove_entry(self, client, household_headers):
        client.post("/api/v1/shortlists", json={"profile_id": "hp-1"}, headers=household_headers)

        response = client.delete("/api/v1/shortlists/hp-1", headers=household_headers)

        assert response.status_code == 204
        exists = client.get("/api/v1/shortlists/exists/hp-1", headers=household_headers)
        assert exists.json() == {"exists": False}

    def test_remove_missing_entry_is_404(self, client, household_headers):
        response = client.delete("/api/v1/shortlists/hp-1", headers=household_headers)

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"


class TestUnlockRoutes:
    """Profile unlocks and lock conflicts."""

    def test_status_before_unlock(self, client, household_headers):
        response = client.get("/api/v1/shortlists/unlock-status/hp-1", headers=household_headers)

        assert response.status_code == 200
        assert response.json() == {"unlocked": False, "unlocked_by_me": False, "expires_at": None}

    def test_unlock_then_status(self, client, household_headers, other_household_headers):
        response = client.post(
            "/api/v1/shortlists/unlock",
            json={"profile_id": "hp-1", "duration_days": 7},
            headers=household_headers,
        )
        assert response.status_code == 200
        assert response.json()["household_id"] == HOUSEHOLD_ID
        assert response.json()["source"] == "purchase"

        mine = client.get("/api/v1/shortlists/unlock-status/hp-1", headers=household_headers)
        assert mine.json()["unlocked"] is True
        assert mine.json()["unlocked_by_me"] is True
        assert mine.json()["expires_at"] is not None

        theirs = client.get(
            "/api/v1/shortlists/unlock-status/hp-1", headers=other_household_headers
        )
        assert theirs.json() == {"unlocked": True, "unlocked_by_me": False, "expires_at": None}

    def test_locked_profile_cannot_be_shortlisted_by_other(
        self, client, household_headers, other_household_headers
    ):
        client.post(
            "/api/v1/shortlists/unlock", json={"profile_id": "hp-1"}, headers=household_headers
        )

        response = client.post(
            "/api/v1/shortlists", json={"profile_id": "hp-1"}, headers=other_household_headers
        )

        assert response.status_code == 409
        data = response.json()
        assert data["kind"] == "profile_locked"
        assert data["refresh"] is False

    def test_second_unlock_by_other_household_conflicts(
        self, client, household_headers, other_household_headers
    ):
        client.post(
            "/api/v1/shortlists/unlock", json={"profile_id": "hp-1"}, headers=household_headers
        )

        response = client.post(
            "/api/v1/shortlists/unlock",
            json={"profile_id": "hp-1"},
            headers=other_household_headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "already_locked"

    def test_unlock_rejects_non_positive_duration(self, client, household_headers):
        response = client.post(
            "/api/v1/shortlists/unlock",
            json={"profile_id": "hp-1", "duration_days": 0},
            headers=household_headers,
        )
        assert response.status_code == 422
