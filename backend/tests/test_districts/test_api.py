"""
Integration tests for district API endpoints.

DistrictService is mocked; these tests cover which routes are public, the admin
gate and the response envelope.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from factories import login_as, make_district
from ponno.core.exceptions import BusinessRuleError, NotFoundError, StoreError

DISTRICTS_URL = "/api/v1/districts"


@pytest.fixture
def mock_district_service():
    service = MagicMock()
    service.list_districts = AsyncMock()
    service.get_district_with_stats = AsyncMock()
    service.list_district_agents = AsyncMock()
    service.create_district = AsyncMock()
    service.delete_district = AsyncMock()

    with patch("ponno.api.v1.districts.DistrictService", return_value=service):
        yield service


# ============================================================================
# Public Endpoint Tests
# ============================================================================


class TestPublicDistrictEndpoints:
    """Test endpoints that need no token."""

    def test_list_districts(
        self, test_client: TestClient, mock_district_service: MagicMock
    ) -> None:
        mock_district_service.list_districts.return_value = [
            make_district("Barishal"),
            make_district("Dhaka"),
        ]

        response = test_client.get(DISTRICTS_URL)

        assert response.status_code == status.HTTP_200_OK
        names = [d["name"] for d in response.json()["data"]["districts"]]
        assert names == ["Barishal", "Dhaka"]

    def test_get_district_with_stats(
        self, test_client: TestClient, mock_district_service: MagicMock
    ) -> None:
        district = make_district("Sylhet")
        mock_district_service.get_district_with_stats.return_value = (
            district,
            {
                "total_users": 5,
                "total_farmers": 2,
                "total_customers": 2,
                "total_agents": 1,
                "total_products": 3,
                "total_orders": 7,
            },
        )

        response = test_client.get(f"{DISTRICTS_URL}/{district.id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["district"]["id"] == str(district.id)
        assert data["stats"]["total_orders"] == 7

    def test_get_missing_district(
        self, test_client: TestClient, mock_district_service: MagicMock
    ) -> None:
        mock_district_service.get_district_with_stats.side_effect = NotFoundError(
            "District not found", code="DISTRICT_NOT_FOUND"
        )

        response = test_client.get(f"{DISTRICTS_URL}/{uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "DISTRICT_NOT_FOUND"


# ============================================================================
# Agent Roster Tests
# ============================================================================


class TestDistrictAgents:
    """Test GET /districts/{id}/agents."""

    def test_requires_authentication(
        self, test_client: TestClient, mock_district_service: MagicMock
    ) -> None:
        response = test_client.get(f"{DISTRICTS_URL}/{uuid4()}/agents")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["code"] == "MISSING_TOKEN"

    def test_lists_agents(
        self,
        test_client: TestClient,
        mock_district_service: MagicMock,
        marketplace: dict[str, Any],
    ) -> None:
        login_as(marketplace["customer"])
        district = marketplace["d1"]
        pagination = {"page": 1, "limit": 10, "total": 1, "pages": 1}
        mock_district_service.list_district_agents.return_value = (
            district,
            [marketplace["agent_a"]],
            pagination,
        )

        response = test_client.get(
            f"{DISTRICTS_URL}/{district.id}/agents", params={"limit": 10}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["pagination"] == pagination
        assert [a["name"] for a in data["agents"]] == ["Agent A"]
        mock_district_service.list_district_agents.assert_awaited_once_with(
            district.id, page=1, limit=10
        )


# ============================================================================
# Administration Tests
# ============================================================================


class TestDistrictAdministration:
    """Test admin-only district creation and deletion."""

    def test_admin_creates_district(
        self,
        test_client: TestClient,
        mock_district_service: MagicMock,
        marketplace: dict[str, Any],
    ) -> None:
        login_as(marketplace["admin"])
        mock_district_service.create_district.return_value = make_district("Rangpur")

        response = test_client.post(DISTRICTS_URL, json={"name": "Rangpur"})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["district"]["name"] == "Rangpur"
        mock_district_service.create_district.assert_awaited_once_with("Rangpur")

    def test_customer_cannot_create_district(
        self,
        test_client: TestClient,
        mock_district_service: MagicMock,
        marketplace: dict[str, Any],
    ) -> None:
        login_as(marketplace["customer"])

        response = test_client.post(DISTRICTS_URL, json={"name": "Rangpur"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"
        mock_district_service.create_district.assert_not_awaited()

    def test_short_name_rejected(
        self,
        test_client: TestClient,
        mock_district_service: MagicMock,
        marketplace: dict[str, Any],
    ) -> None:
        login_as(marketplace["admin"])

        response = test_client.post(DISTRICTS_URL, json={"name": " R "})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["errors"][0]["field"] == "name"

    def test_duplicate_name(
        self,
        test_client: TestClient,
        mock_district_service: MagicMock,
        marketplace: dict[str, Any],
    ) -> None:
        login_as(marketplace["admin"])
        mock_district_service.create_district.side_effect = StoreError(
            "Duplicate entry found", code="DUPLICATE_ENTRY", status_code=409
        )

        response = test_client.post(DISTRICTS_URL, json={"name": "Dhaka"})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "DUPLICATE_ENTRY"

    def test_delete_district_in_use(
        self,
        test_client: TestClient,
        mock_district_service: MagicMock,
        marketplace: dict[str, Any],
    ) -> None:
        login_as(marketplace["admin"])
        mock_district_service.delete_district.side_effect = BusinessRuleError(
            "Cannot delete district with existing users or products",
            code="DISTRICT_IN_USE",
        )

        response = test_client.delete(f"{DISTRICTS_URL}/{uuid4()}")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "DISTRICT_IN_USE"

    def test_admin_deletes_district(
        self,
        test_client: TestClient,
        mock_district_service: MagicMock,
        marketplace: dict[str, Any],
    ) -> None:
        login_as(marketplace["admin"])
        district_id = uuid4()

        response = test_client.delete(f"{DISTRICTS_URL}/{district_id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True
        mock_district_service.delete_district.assert_awaited_once_with(district_id)
