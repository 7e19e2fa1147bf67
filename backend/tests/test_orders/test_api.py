"""
Integration tests for order API endpoints.

This module exercises the order router end to end through FastAPI
TestClient: bearer authentication, order placement, status changes,
deletion, the finders and the mapping of service failures to HTTP status
codes. Requests run against the seeded SQLite database from conftest.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from restaurant_orders.core.security import create_access_token
from restaurant_orders.services.auth.identity import IdentityContext
from tests.factories import (
    CLIENT_ID,
    OTHER_CLIENT_ID,
    OTHER_OWNER_ID,
    OTHER_RESTAURANT_ID,
    OWNER_ID,
    PRODUCT_ID,
    RESTAURANT_ID,
    SECOND_PRODUCT_ID,
    bearer,
)

ORDERS_URL = "/api/v1/orders"
WIDE_RANGE = {"start": "2000-01-01T00:00:00", "end": "2100-01-01T00:00:00"}


# ============================================================================
# Test Data Factories
# ============================================================================


def order_payload(
    client_id: int = CLIENT_ID,
    restaurant_id: int = RESTAURANT_ID,
    lines: Optional[List[Dict[str, Any]]] = None,
    total: str = "29.98",
    **extra: Any,
) -> Dict[str, Any]:
    if lines is None:
        lines = [{"product_id": PRODUCT_ID, "quantity": 2, "subtotal": "29.98"}]
    payload = {
        "client_id": client_id,
        "restaurant_id": restaurant_id,
        "lines": lines,
        "total": total,
    }
    payload.update(extra)
    return payload


def place_order(
    test_client: TestClient, identity: IdentityContext, **kwargs: Any
) -> Dict[str, Any]:
    response = test_client.post(
        ORDERS_URL, json=order_payload(**kwargs), headers=bearer(identity)
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


@pytest.fixture
def placed_order(
    test_client: TestClient, client_identity: IdentityContext
) -> Dict[str, Any]:
    return place_order(test_client, client_identity)


# ============================================================================
# Authentication Tests
# ============================================================================


class TestAuthentication:
    def test_missing_token(self, test_client: TestClient) -> None:
        response = test_client.get(f"{ORDERS_URL}/1")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Could not validate credentials"

    def test_garbage_token(self, test_client: TestClient) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/1", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_token(self, test_client: TestClient) -> None:
        token = create_access_token(
            subject_id=CLIENT_ID,
            email="client@example.com",
            role="CLIENTE",
            expires_delta=timedelta(minutes=-5),
        )

        response = test_client.get(
            f"{ORDERS_URL}/client/{CLIENT_ID}",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unknown_role(self, test_client: TestClient) -> None:
        token = create_access_token(
            subject_id=CLIENT_ID, email="client@example.com", role="WAITER"
        )

        response = test_client.get(
            f"{ORDERS_URL}/client/{CLIENT_ID}",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_prefixed_role_is_accepted(self, test_client: TestClient) -> None:
        token = create_access_token(
            subject_id=CLIENT_ID, email="client@example.com", role="ROLE_cliente"
        )

        response = test_client.get(
            f"{ORDERS_URL}/client/{CLIENT_ID}",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []


# ============================================================================
# Order Creation Tests
# ============================================================================


class TestCreateOrder:
    def test_create_order(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.post(
            ORDERS_URL,
            json=order_payload(comments="sin picante"),
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["id"] > 0
        assert data["status"] == "pendiente"
        assert data["total"] == "29.98"
        assert data["comments"] == "sin picante"
        assert data["restaurant_name"] == "La Esquina"
        assert data["created_at"] == data["updated_at"]
        assert len(data["lines"]) == 1
        assert data["lines"][0]["product_name"] == "Empanada"
        assert data["lines"][0]["subtotal"] == "29.98"

    def test_create_order_uppercase_status(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.post(
            ORDERS_URL,
            json=order_payload(status="PENDIENTE"),
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_201_CREATED

    def test_create_order_total_mismatch(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.post(
            ORDERS_URL,
            json=order_payload(total="30.00"),
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["reason"] == "TotalMismatch"

    @pytest.mark.parametrize(
        "payload,reason",
        [
            (order_payload(lines=[], total="0.00"), "EmptyOrderLines"),
            (order_payload(restaurant_id=0), "InvalidRestaurantId"),
            (order_payload(status="pagado"), "InvalidInitialStatus"),
            (
                order_payload(
                    lines=[{"product_id": PRODUCT_ID, "quantity": 0, "subtotal": "29.98"}]
                ),
                "InvalidLineQuantity",
            ),
            (
                order_payload(
                    lines=[{"product_id": PRODUCT_ID, "quantity": 2, "subtotal": "29.985"}],
                    total="29.985",
                ),
                "InvalidLineSubtotal",
            ),
            (
                order_payload(
                    lines=[{"product_id": PRODUCT_ID, "quantity": 2, "subtotal": "1E+30"}],
                    total="1E+30",
                ),
                "InvalidLineSubtotal",
            ),
            (
                order_payload(
                    lines=[
                        {"product_id": PRODUCT_ID, "quantity": 2, "subtotal": "100000000.00"}
                    ],
                    total="100000000.00",
                ),
                "InvalidLineSubtotal",
            ),
            (order_payload(total="1E+30"), "TotalMismatch"),
        ],
    )
    def test_create_order_rejections(
        self,
        test_client: TestClient,
        client_identity: IdentityContext,
        payload: Dict[str, Any],
        reason: str,
    ) -> None:
        response = test_client.post(
            ORDERS_URL, json=payload, headers=bearer(client_identity)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["reason"] == reason

    def test_create_order_unknown_status_is_422(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.post(
            ORDERS_URL,
            json=order_payload(status="shipped"),
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "Validation Error"

    def test_create_order_for_another_client(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.post(
            ORDERS_URL,
            json=order_payload(client_id=OTHER_CLIENT_ID),
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "Not authorized"

    def test_owner_cannot_place_order(
        self, test_client: TestClient, owner_identity: IdentityContext
    ) -> None:
        response = test_client.post(
            ORDERS_URL,
            json=order_payload(client_id=OWNER_ID),
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_create_order_missing_restaurant(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.post(
            ORDERS_URL,
            json=order_payload(restaurant_id=404),
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Restaurant not found"

    def test_create_order_missing_product(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.post(
            ORDERS_URL,
            json=order_payload(
                lines=[{"product_id": 404, "quantity": 1, "subtotal": "1.00"}],
                total="1.00",
            ),
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Product not found"


# ============================================================================
# Single Order Tests
# ============================================================================


class TestGetOrder:
    @pytest.mark.parametrize(
        "identity_fixture", ["client_identity", "owner_identity", "admin_identity"]
    )
    def test_participants_read_order(
        self,
        request,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        identity_fixture: str,
    ) -> None:
        identity = request.getfixturevalue(identity_fixture)

        response = test_client.get(
            f"{ORDERS_URL}/{placed_order['id']}", headers=bearer(identity)
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == placed_order["id"]

    def test_stranger_cannot_read_order(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        other_client_identity: IdentityContext,
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/{placed_order['id']}",
            headers=bearer(other_client_identity),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_order(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.get(f"{ORDERS_URL}/999", headers=bearer(client_identity))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Order not found"


class TestUpdateOrderStatus:
    def test_owner_marks_order_paid(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        owner_identity: IdentityContext,
    ) -> None:
        response = test_client.patch(
            f"{ORDERS_URL}/{placed_order['id']}/status",
            json={"status": "pagado", "comments": "pagado en caja"},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "pagado"
        assert data["comments"] == "pagado en caja"
        assert data["total"] == "29.98"

    def test_other_owner_is_forbidden(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        other_owner_identity: IdentityContext,
    ) -> None:
        response = test_client.patch(
            f"{ORDERS_URL}/{placed_order['id']}/status",
            json={"status": "pagado"},
            headers=bearer(other_owner_identity),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "Not authorized"

    def test_illegal_transition_is_conflict(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        owner_identity: IdentityContext,
    ) -> None:
        url = f"{ORDERS_URL}/{placed_order['id']}/status"
        headers = bearer(owner_identity)
        for step in ("pagado", "entregado"):
            assert test_client.patch(url, json={"status": step}, headers=headers).status_code == 200

        response = test_client.patch(url, json={"status": "pendiente"}, headers=headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        detail = response.json()["detail"]
        assert detail["current_status"] == "entregado"
        assert detail["requested_status"] == "pendiente"

    def test_repeating_status_is_accepted(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        owner_identity: IdentityContext,
    ) -> None:
        response = test_client.patch(
            f"{ORDERS_URL}/{placed_order['id']}/status",
            json={"status": "PENDIENTE"},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "pendiente"

    def test_unknown_status_is_422(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        owner_identity: IdentityContext,
    ) -> None:
        response = test_client.patch(
            f"{ORDERS_URL}/{placed_order['id']}/status",
            json={"status": "lost"},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_missing_order(
        self, test_client: TestClient, owner_identity: IdentityContext
    ) -> None:
        response = test_client.patch(
            f"{ORDERS_URL}/999/status",
            json={"status": "pagado"},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestDeleteOrder:
    def test_owner_deletes_order(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        owner_identity: IdentityContext,
    ) -> None:
        url = f"{ORDERS_URL}/{placed_order['id']}"

        response = test_client.delete(url, headers=bearer(owner_identity))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert test_client.get(url, headers=bearer(owner_identity)).status_code == 404

    def test_client_cannot_delete(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        client_identity: IdentityContext,
    ) -> None:
        response = test_client.delete(
            f"{ORDERS_URL}/{placed_order['id']}", headers=bearer(client_identity)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


# ============================================================================
# Finder Tests
# ============================================================================


class TestFinders:
    def test_restaurant_orders(
        self,
        test_client: TestClient,
        client_identity: IdentityContext,
        owner_identity: IdentityContext,
    ) -> None:
        first = place_order(test_client, client_identity)
        second = place_order(
            test_client,
            client_identity,
            lines=[{"product_id": SECOND_PRODUCT_ID, "quantity": 1, "subtotal": "5.50"}],
            total="5.50",
        )

        response = test_client.get(
            f"{ORDERS_URL}/restaurant/{RESTAURANT_ID}", headers=bearer(owner_identity)
        )

        assert response.status_code == status.HTTP_200_OK
        ids = [order["id"] for order in response.json()]
        assert set(ids) == {first["id"], second["id"]}

    def test_restaurant_orders_of_other_owner(
        self, test_client: TestClient, owner_identity: IdentityContext
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/restaurant/{OTHER_RESTAURANT_ID}",
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_restaurant(
        self, test_client: TestClient, owner_identity: IdentityContext
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/restaurant/404", headers=bearer(owner_identity)
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_restaurant_orders_by_status(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        owner_identity: IdentityContext,
    ) -> None:
        pending = test_client.get(
            f"{ORDERS_URL}/restaurant/{RESTAURANT_ID}/status/pendiente",
            headers=bearer(owner_identity),
        )
        paid = test_client.get(
            f"{ORDERS_URL}/restaurant/{RESTAURANT_ID}/status/pagado",
            headers=bearer(owner_identity),
        )

        assert [o["id"] for o in pending.json()] == [placed_order["id"]]
        assert paid.json() == []

    def test_restaurant_orders_by_date_range(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        owner_identity: IdentityContext,
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/restaurant/{RESTAURANT_ID}/date-range",
            params=WIDE_RANGE,
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_200_OK
        assert [o["id"] for o in response.json()] == [placed_order["id"]]

    def test_reversed_date_range(
        self, test_client: TestClient, owner_identity: IdentityContext
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/restaurant/{RESTAURANT_ID}/date-range",
            params={"start": WIDE_RANGE["end"], "end": WIDE_RANGE["start"]},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["reason"] == "InvalidDateRange"

    def test_date_range_mixing_offset_and_naive_bounds(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        owner_identity: IdentityContext,
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/restaurant/{RESTAURANT_ID}/date-range",
            params={"start": "2000-01-01T00:00:00Z", "end": "2100-01-01T00:00:00"},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_200_OK
        assert [o["id"] for o in response.json()] == [placed_order["id"]]

    def test_reversed_mixed_date_range(
        self, test_client: TestClient, owner_identity: IdentityContext
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/restaurant/{RESTAURANT_ID}/date-range",
            params={"start": "2024-02-01T00:00:00", "end": "2024-01-01T00:00:00Z"},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["reason"] == "InvalidDateRange"

    def test_owner_page(
        self,
        test_client: TestClient,
        client_identity: IdentityContext,
        owner_identity: IdentityContext,
    ) -> None:
        for _ in range(3):
            place_order(test_client, client_identity)

        response = test_client.get(
            f"{ORDERS_URL}/owner/{OWNER_ID}",
            params={"skip": 0, "limit": 2},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 3
        assert len(data["items"]) == 2
        assert data["has_more"] is True

    def test_owner_page_limit_bounds(
        self, test_client: TestClient, owner_identity: IdentityContext
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/owner/{OWNER_ID}",
            params={"limit": 1000},
            headers=bearer(owner_identity),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_owner_page_of_other_owner(
        self, test_client: TestClient, owner_identity: IdentityContext
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/owner/{OTHER_OWNER_ID}", headers=bearer(owner_identity)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_client_orders(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        client_identity: IdentityContext,
        other_client_identity: IdentityContext,
    ) -> None:
        mine = test_client.get(
            f"{ORDERS_URL}/client/{CLIENT_ID}", headers=bearer(client_identity)
        )
        theirs = test_client.get(
            f"{ORDERS_URL}/client/{OTHER_CLIENT_ID}",
            headers=bearer(other_client_identity),
        )

        assert [o["id"] for o in mine.json()] == [placed_order["id"]]
        assert theirs.json() == []

    def test_client_cannot_read_other_client(
        self, test_client: TestClient, client_identity: IdentityContext
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/client/{OTHER_CLIENT_ID}", headers=bearer(client_identity)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_reads_missing_client(
        self, test_client: TestClient, admin_identity: IdentityContext
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/client/{OWNER_ID}", headers=bearer(admin_identity)
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Client not found"

    def test_client_orders_by_date_range(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        client_identity: IdentityContext,
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/client/{CLIENT_ID}/date-range",
            params=WIDE_RANGE,
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_200_OK
        assert [o["id"] for o in response.json()] == [placed_order["id"]]

    def test_client_orders_by_mixed_date_range(
        self,
        test_client: TestClient,
        placed_order: Dict[str, Any],
        client_identity: IdentityContext,
    ) -> None:
        response = test_client.get(
            f"{ORDERS_URL}/client/{CLIENT_ID}/date-range",
            params={"start": "2000-01-01T00:00:00", "end": "2100-01-01T00:00:00+00:00"},
            headers=bearer(client_identity),
        )

        assert response.status_code == status.HTTP_200_OK
        assert [o["id"] for o in response.json()] == [placed_order["id"]]
