"""
Integration tests for the recommendations and preferences APIs.
"""
from fastapi.testclient import TestClient


def _ids(response):
    return [item["id"] for item in response.json()["items"]]


class TestRecommendationsAPI:
    def test_general_for_viewer_without_preferences(self, test_client: TestClient):
        response = test_client.get("/v1/recommendations", params={"viewer_id": "stranger"})

        assert response.status_code == 200
        data = response.json()
        assert data["filters"] == {"type": "general", "page": 1, "limit": 10}
        assert _ids(response) == ["l1", "l3", "l2"]
        assert all("relevanceScore" in item for item in data["items"])

    def test_fallback_disabled(self, test_client: TestClient):
        response = test_client.get(
            "/v1/recommendations",
            params={"viewer_id": "stranger", "fallbackToGeneral": "false"},
        )

        assert response.status_code == 200
        assert response.json()["filters"]["type"] == "recommended"
        assert response.json()["items"] == []

    def test_personalised_after_preference_update(self, test_client: TestClient):
        update = test_client.put(
            "/v1/preferences/viewer_1",
            json={"preferredCategories": ["cat_plumbing"], "preferredTypes": ["service"]},
        )
        assert update.status_code == 200
        assert update.json()["preferredCategories"] == ["cat_plumbing"]

        response = test_client.get("/v1/recommendations", params={"viewer_id": "viewer_1"})

        assert response.status_code == 200
        assert response.json()["filters"]["type"] == "recommended"
        assert _ids(response) == ["l1"]
        assert 0 < response.json()["items"][0]["relevanceScore"] <= 1

    def test_preference_update_replaces_cached_page(self, test_client: TestClient):
        test_client.put("/v1/preferences/viewer_1", json={"preferredCategories": ["cat_plumbing"]})
        first = test_client.get("/v1/recommendations", params={"viewer_id": "viewer_1"})

        test_client.put(
            "/v1/preferences/viewer_1",
            json={"preferredCategories": ["cat_languages"], "preferredTypes": ["skill"]},
        )
        second = test_client.get("/v1/recommendations", params={"viewer_id": "viewer_1"})

        assert _ids(first) == ["l1"]
        assert _ids(second) == ["l3"]

    def test_invalid_preferences(self, test_client: TestClient):
        response = test_client.put("/v1/preferences/viewer_1", json={"minRating": 9})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_viewer_id(self, test_client: TestClient):
        response = test_client.get("/v1/recommendations")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_malformed_options(self, test_client: TestClient):
        response = test_client.get(
            "/v1/recommendations",
            params={"viewer_id": "viewer_1", "minRelevanceScore": "2"},
        )

        assert response.status_code == 400

    def test_invalidate_cache(self, test_client: TestClient):
        test_client.put("/v1/preferences/viewer_1", json={"preferredCategories": ["cat_plumbing"]})
        test_client.get("/v1/recommendations", params={"viewer_id": "viewer_1"})
        test_client.get("/v1/recommendations", params={"viewer_id": "viewer_1", "limit": 5})

        response = test_client.delete("/v1/recommendations/cache/viewer_1")

        assert response.status_code == 200
        assert response.json() == {"viewerId": "viewer_1", "removed": 2}


class TestInteractionsAPI:
    def test_record_interaction(self, test_client: TestClient):
        response = test_client.post(
            "/v1/recommendations/interactions",
            json={"viewerId": "viewer_1", "listingId": "l2", "interactionType": "favorite"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["listingId"] == "l2"
        assert data["interactionType"] == "favorite"
        assert data["listing"]["categoryId"] == "cat_repair"

    def test_interacted_listings_are_excluded(self, test_client: TestClient):
        test_client.put("/v1/preferences/viewer_1", json={"preferredCategories": ["cat_plumbing"]})
        test_client.post(
            "/v1/recommendations/interactions",
            json={"viewerId": "viewer_1", "listingId": "l1", "interactionType": "view"},
        )

        response = test_client.get("/v1/recommendations", params={"viewer_id": "viewer_1"})

        assert _ids(response) == []

    def test_unknown_listing(self, test_client: TestClient):
        response = test_client.post(
            "/v1/recommendations/interactions",
            json={"viewerId": "viewer_1", "listingId": "missing", "interactionType": "view"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_unknown_interaction_type(self, test_client: TestClient):
        response = test_client.post(
            "/v1/recommendations/interactions",
            json={"viewerId": "viewer_1", "listingId": "l1", "interactionType": "stare"},
        )

        assert response.status_code == 400
