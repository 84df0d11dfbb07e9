"""HTTP tests for hotel and review endpoints."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from hotelcore.api.factory import create_app
from hotelcore.domain.errors import HotelNotFoundError, HotelValidationError

ROUTES = "hotelcore.api.routes.hotels.hotels"


@pytest.fixture
def client():
    return TestClient(create_app(role="public"))


def test_create_hotel(client):
    with patch(f"{ROUTES}.create_hotel", return_value={"id": "h1"}) as create:
        response = client.post(
            "/hotels", json={"name": "Casa Azul", "city": "Porto", "country": "PT"}
        )
    assert response.status_code == 201
    fields = create.call_args.args[0]
    assert fields["name"] == "Casa Azul"
    assert "slug" not in fields


def test_create_hotel_validation_error(client):
    with patch(
        f"{ROUTES}.create_hotel",
        side_effect=HotelValidationError("invalid_price", "Maximum price cannot be below the minimum price"),
    ):
        response = client.post("/hotels", json={"name": "X", "city": "Y", "country": "Z"})
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "invalid_price"


def test_update_hotel_only_set_fields(client):
    with patch(f"{ROUTES}.update_hotel", return_value={"id": "h1"}) as update:
        client.patch("/hotels/h1", json={"is_featured": True})
    assert update.call_args.args == ("h1", {"is_featured": True})


def test_update_missing_hotel(client):
    with patch(f"{ROUTES}.update_hotel", side_effect=HotelNotFoundError("Hotel h9 not found")):
        assert client.patch("/hotels/h9", json={"name": "New"}).status_code == 404


def test_submit_review(client):
    with patch(f"{ROUTES}.submit_review", return_value={"id": "rv1"}) as submit:
        response = client.post("/hotels/h1/reviews", json={"rating": 4, "title": "Nice"})
    assert response.status_code == 201
    assert submit.call_args.kwargs["rating"] == 4


def test_review_rating_bounds(client):
    assert client.post("/hotels/h1/reviews", json={"rating": 0}).status_code == 422


def test_delete_review(client):
    with patch(f"{ROUTES}.delete_review") as delete:
        response = client.delete("/reviews/rv1")
    assert response.status_code == 204
    delete.assert_called_once_with("rv1")
