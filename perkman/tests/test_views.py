"""Tests for the JSON endpoints."""

import json
from unittest.mock import patch

import pytest
from django.test import RequestFactory

from perkman.models import Order, Reservation
from perkman.views import (
    CancelView,
    CompleteView,
    PrepareView,
    PreviewView,
    ReservationStatusView,
    StampProgressView,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def rf():
    return RequestFactory()


def post(rf, view, body):
    raw = body if isinstance(body, (str, bytes)) else json.dumps(body)
    request = rf.post("/", data=raw, content_type="application/json")
    response = view.as_view()(request)
    return response, json.loads(response.content)


def preview_body(**selections):
    return {
        "customerId": "CUST-001",
        "items": [{"productId": "MEAL", "quantity": 1}],
        "selections": selections,
    }


class TestPrepareView:
    """POST /prepare"""

    def test_success(self, rf, rich_customer, meal, campaign_20, owned_reward_50, reward_shop):
        response, data = post(
            rf, PrepareView, {"customerId": "CUST-001", "items": [{"productId": "MEAL", "quantity": 1}]}
        )

        assert response.status_code == 200
        assert data["customer"] == {
            "customerId": "CUST-001",
            "name": "Ayla Demir",
            "availablePoints": 500,
            "tier": None,
        }
        assert [c["campaignId"] for c in data["eligibleCampaigns"]] == ["SAVE20"]
        assert [(r["rewardId"], r["owned"]) for r in data["eligibleRewards"]] == [
            ("FIFTY", True),
            ("DESSERT", False),
        ]
        assert data["eligibleRewards"][1]["pointsCost"] == 300
        assert data["calculations"]["subtotal"] == "1000.00"
        assert data["calculations"]["maxPointDiscount"] == "50.00"
        assert data["calculations"]["pointsToEarn"] == 100
        assert not Reservation.objects.exists()

    def test_stamps_without_items(self, rf, customer, coffee, stamp_campaign, history_order):
        history_order(customer, coffee, 5)

        response, data = post(rf, PrepareView, {"customerId": "CUST-001"})

        assert response.status_code == 200
        stamp = data["eligibleStamps"][0]
        assert stamp["campaignId"] == "COFFEE-CARD"
        assert stamp["available"] == 1
        assert stamp["canRedeem"] is True
        assert data["calculations"]["subtotal"] == "0.00"

    def test_unknown_customer(self, rf, db):
        response, data = post(rf, PrepareView, {"customerId": "NOPE"})

        assert response.status_code == 404
        assert data["error"] == "CUSTOMER_NOT_FOUND"

    @pytest.mark.parametrize(
        "body",
        [{}, {"customerId": "CUST-001", "items": []}, {"customerId": "CUST-001", "items": "x"}],
    )
    def test_invalid_request(self, rf, customer, body):
        response, data = post(rf, PrepareView, body)

        assert response.status_code == 400
        assert data["error"] == "INVALID_REQUEST"


class TestPreviewView:
    """POST /preview"""

    def test_success(self, rf, rich_customer, meal, campaign_20, owned_reward_50):
        response, data = post(
            rf, PreviewView, preview_body(campaignIds=["SAVE20"], rewardIds=["FIFTY"], usePoints=200)
        )

        assert response.status_code == 200
        assert data["breakdown"]["subtotal"] == "1000.00"
        assert data["breakdown"]["finalAmount"] == "730.00"
        assert data["breakdown"]["campaignDiscounts"][0]["campaignId"] == "SAVE20"
        assert data["breakdown"]["rewardDiscounts"][0]["amount"] == "50.00"
        assert data["breakdown"]["pointDiscount"] == "20.00"
        assert data["impact"]["pointsWillBeUsed"] == 200
        assert data["impact"]["pointsWillBeEarned"] == 73
        assert data["impact"]["finalPointBalance"] == 373
        assert data["tokenInfo"]["valid"] is True
        assert data["reservationToken"]
        assert "errors" not in data

    def test_insufficient_points_is_reported(self, rf, rich_customer, meal):
        response, data = post(rf, PreviewView, preview_body(usePoints=9999))

        assert response.status_code == 200
        assert data["errors"][0]["code"] == "INSUFFICIENT_POINTS"
        assert data["breakdown"]["finalAmount"] == "1000.00"

    def test_warnings(self, rf, customer, meal):
        response, data = post(rf, PreviewView, preview_body(campaignIds=["NOPE"]))

        assert response.status_code == 200
        assert data["warnings"] == [
            {"code": "CAMPAIGN_NOT_FOUND", "message": "Unknown campaign: NOPE", "ref": "NOPE"}
        ]

    def test_unknown_customer(self, rf, meal):
        response, data = post(rf, PreviewView, preview_body())

        assert response.status_code == 404
        assert data["error"] == "CUSTOMER_NOT_FOUND"

    @pytest.mark.parametrize(
        "body",
        [
            "not json",
            [],
            {"items": [{"productId": "MEAL", "quantity": 1}]},
            {"customerId": "CUST-001", "items": []},
            {"customerId": "CUST-001", "items": [{"productId": "MEAL", "quantity": 0}]},
            {"customerId": "CUST-001", "items": [{"quantity": 1}]},
            {"customerId": "CUST-001", "items": [{"productId": "MEAL", "quantity": 1, "unitPrice": -1}]},
            {"customerId": "CUST-001", "items": [{"productId": "MEAL", "quantity": 1}], "selections": {"usePoints": -5}},
            {"customerId": "CUST-001", "items": [{"productId": "MEAL", "quantity": 1}], "selections": {"campaignIds": "SAVE20"}},
        ],
    )
    def test_invalid_request(self, rf, customer, meal, body):
        response, data = post(rf, PreviewView, body)

        assert response.status_code == 400
        assert data["error"] == "INVALID_REQUEST"

    def test_unexpected_error(self, rf, customer, meal):
        with patch("perkman.views.PricingService.preview", side_effect=RuntimeError("boom")):
            response, data = post(rf, PreviewView, preview_body())

        assert response.status_code == 500
        assert data["error"] == "INTERNAL_ERROR"


class TestCompleteView:
    """POST /complete"""

    def _token(self, rf):
        _, data = post(rf, PreviewView, preview_body(usePoints=100))
        return data["reservationToken"]

    def test_success(self, rf, rich_customer, meal):
        token = self._token(rf)

        response, data = post(
            rf, CompleteView, {"reservationToken": token, "orderNumber": "ORD-1", "paymentMethod": "card"}
        )

        assert response.status_code == 201
        assert data["success"] is True
        assert data["orderNumber"] == "ORD-1"
        assert data["summary"]["finalAmount"] == "990.00"
        assert data["summary"]["pointsUsed"] == 100
        assert data["summary"]["pointsEarned"] == 99
        assert data["summary"]["newPointBalance"] == 500 - 100 + 99
        assert data["receipt"]["paymentMethod"] == "card"
        assert data["receipt"]["items"][0]["productId"] == "MEAL"
        assert data["receipt"]["discounts"] == [{"type": "points", "name": "Points (100)", "amount": "10.00"}]
        assert data["achievements"][0]["type"] == "MILESTONE"

    def test_duplicate(self, rf, rich_customer, meal):
        post(rf, CompleteView, {"reservationToken": self._token(rf), "orderNumber": "ORD-1"})

        response, data = post(rf, CompleteView, {"reservationToken": self._token(rf), "orderNumber": "ORD-1"})

        assert response.status_code == 409
        assert data["error"] == "DUPLICATE_ORDER"

    def test_invalid_token(self, rf, rich_customer):
        response, data = post(rf, CompleteView, {"reservationToken": "nope", "orderNumber": "ORD-1"})

        assert response.status_code == 400
        assert data["error"] == "RESERVATION_INVALID"
        assert not Order.objects.exists()

    def test_missing_fields(self, rf, rich_customer):
        response, data = post(rf, CompleteView, {"orderNumber": "ORD-1"})

        assert response.status_code == 400
        assert data["error"] == "INVALID_REQUEST"
        assert data["details"] == {"field": "reservationToken"}


class TestCancelView:
    """POST /cancel"""

    def test_success(self, rf, rich_customer, meal):
        _, preview = post(rf, PreviewView, preview_body(usePoints=100))
        post(rf, CompleteView, {"reservationToken": preview["reservationToken"], "orderNumber": "ORD-1"})

        response, data = post(rf, CancelView, {"orderNumber": "ORD-1", "reason": "mistake"})

        assert response.status_code == 200
        assert data == {"success": True, "orderNumber": "ORD-1", "pointsRefunded": 100, "pointsRevoked": 99}

    def test_unknown(self, rf, db):
        response, data = post(rf, CancelView, {"orderNumber": "NOPE"})

        assert response.status_code == 404
        assert data["error"] == "ORDER_NOT_FOUND"


class TestStampProgressView:
    """GET /stamps"""

    def test_progress(self, rf, customer, coffee, stamp_campaign, history_order):
        history_order(customer, coffee, 7)

        response = StampProgressView.as_view()(rf.get("/", {"customerId": "CUST-001"}))
        data = json.loads(response.content)

        assert response.status_code == 200
        assert data["totalAvailable"] == 1
        assert data["stamps"][0]["campaignId"] == "COFFEE-CARD"
        assert data["warnings"] == []

    def test_missing_customer_id(self, rf, db):
        response = StampProgressView.as_view()(rf.get("/"))

        assert response.status_code == 400

    def test_unknown_customer(self, rf, db):
        response = StampProgressView.as_view()(rf.get("/", {"customerId": "NOPE"}))

        assert response.status_code == 404


class TestReservationStatusView:
    """GET /reservations/<token>"""

    def test_unknown(self, rf, db):
        response = ReservationStatusView.as_view()(rf.get("/"), token="missing")

        assert response.status_code == 404
        assert json.loads(response.content)["status"] == "unknown"

    def test_valid_then_consumed(self, rf, rich_customer, meal):
        _, preview = post(rf, PreviewView, preview_body())
        token = preview["reservationToken"]

        response = ReservationStatusView.as_view()(rf.get("/"), token=token)
        assert json.loads(response.content)["status"] == "valid"

        post(rf, CompleteView, {"reservationToken": token, "orderNumber": "ORD-1"})
        response = ReservationStatusView.as_view()(rf.get("/"), token=token)
        data = json.loads(response.content)

        assert response.status_code == 200
        assert data["status"] == "consumed"
        assert data["customerId"] == "CUST-001"
