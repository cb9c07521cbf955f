"""
Perkman HTTP endpoints (JSON).

    POST /prepare                 list what a customer could apply
    POST /preview                 price an order and reserve it
    POST /complete                commit a reservation
    POST /cancel                  cancel a committed order
    GET  /stamps?customerId=      stamp card progress
    GET  /reservations/<token>    token diagnostics

Errors are returned as {"error": code, "message": ..., "details": {...}}
with the status carried by PerkmanError.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from perkman.engine.stacking import Quote
from perkman.exceptions import PerkmanError
from perkman.protocols.catalog import ItemRequest
from perkman.services.checkout import CheckoutService
from perkman.services.entitlements import EntitlementService
from perkman.services.pricing import PricingService, Selections
from perkman.services.reservations import ReservationStore

logger = logging.getLogger("perkman.api")


# ===========================================
# Request parsing
# ===========================================


def _invalid(message: str, **data) -> PerkmanError:
    return PerkmanError("INVALID_REQUEST", message=message, **data)


def _json_body(request) -> dict:
    try:
        data = json.loads(request.body or b"{}")
    except (json.JSONDecodeError, ValueError):
        raise _invalid("Invalid JSON")
    if not isinstance(data, dict):
        raise _invalid("Request body must be a JSON object")
    return data


def _required_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise _invalid(f"{key} is required", field=key)
    return value.strip()


def _optional_str(data: dict, key: str) -> str:
    value = data.get(key) or ""
    if not isinstance(value, str):
        raise _invalid(f"{key} must be a string", field=key)
    return value


def _code_list(data: dict, key: str) -> tuple[str, ...]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise _invalid(f"selections.{key} must be a list of strings", field=key)
    return tuple(value)


def _non_negative_int(value, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _invalid(f"{key} must be a non-negative integer", field=key)
    return value


def parse_items(raw) -> list[ItemRequest]:
    if not isinstance(raw, list) or not raw:
        raise _invalid("items must be a non-empty list", field="items")

    items = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise _invalid(f"items[{index}] must be an object", field="items")
        quantity = item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise _invalid(f"items[{index}].quantity must be at least 1", field="items")

        product_code = item.get("productId") or ""
        menu_item_key = item.get("menuItemKey") or ""
        if not isinstance(product_code, str) or not isinstance(menu_item_key, str):
            raise _invalid(f"items[{index}] identifiers must be strings", field="items")
        if not product_code and not menu_item_key:
            raise _invalid(f"items[{index}] needs productId or menuItemKey", field="items")

        unit_price = item.get("unitPrice")
        if unit_price is not None:
            if isinstance(unit_price, bool):
                raise _invalid(f"items[{index}].unitPrice must be a number", field="items")
            try:
                unit_price = Decimal(str(unit_price))
            except InvalidOperation:
                raise _invalid(f"items[{index}].unitPrice must be a number", field="items")
            if not unit_price.is_finite() or unit_price < 0:
                raise _invalid(f"items[{index}].unitPrice must be >= 0", field="items")

        items.append(
            ItemRequest(
                quantity=quantity,
                product_code=product_code,
                menu_item_key=menu_item_key,
                product_name=str(item.get("productName") or ""),
                category=str(item.get("category") or ""),
                unit_price=unit_price,
            )
        )
    return items


def parse_selections(raw) -> Selections:
    if raw is None:
        return Selections()
    if not isinstance(raw, dict):
        raise _invalid("selections must be an object", field="selections")
    return Selections(
        campaign_codes=_code_list(raw, "campaignIds"),
        stamp_codes=_code_list(raw, "redeemStampIds"),
        reward_codes=_code_list(raw, "rewardIds"),
        points=_non_negative_int(raw.get("usePoints") or 0, "usePoints"),
    )


def error_response(exc: PerkmanError) -> JsonResponse:
    body = {"error": exc.code, "message": exc.message}
    if exc.data:
        body["details"] = exc.data
    return JsonResponse(body, status=exc.status_code)


# ===========================================
# Response formatting
# ===========================================


def breakdown(quote: Quote) -> dict:
    return {
        "subtotal": quote.subtotal,
        "campaignDiscounts": [
            {"campaignId": c.code, "name": c.name, "type": c.campaign_type, "amount": c.discount_amount}
            for c in quote.campaigns
            if c.discount_amount > 0
        ],
        "loyaltyMultiplier": quote.loyalty_multiplier,
        "stampProducts": [
            {
                "campaignId": s.campaign_code,
                "productId": s.product_code,
                "name": s.product_name,
                "quantity": s.quantity,
                "value": s.value,
            }
            for s in quote.stamps
        ],
        "rewardDiscounts": [
            {
                "rewardId": r.code,
                "name": r.name,
                "amount": r.discount_amount,
                "pointsCost": r.points_cost,
            }
            for r in quote.rewards
        ],
        "pointDiscount": quote.point_discount,
        "pointsUsed": quote.points_to_use,
        "totalDiscount": quote.total_discount,
        "finalAmount": quote.final_amount,
    }


def impact(quote: Quote, current_points: int) -> dict:
    return {
        "pointsWillBeUsed": quote.points_to_use,
        "rewardPointsCost": quote.reward_points_cost,
        "pointsWillBeEarned": quote.points_to_earn,
        "finalPointBalance": current_points - quote.points_debit + quote.points_to_earn,
        "stampsWillBeUsed": len(quote.stamps),
        "campaignUsageWillCount": bool(quote.campaigns),
        "tierMultiplier": quote.tier_multiplier,
    }


def receipt(result) -> dict:
    order, quote = result.order, result.quote
    discounts = [
        {"type": d.kind, "name": d.name, "amount": d.amount} for d in quote.discounts
    ]
    return {
        "items": [
            {
                "productId": line.product_code,
                "name": line.product_name,
                "menuItemKey": line.menu_item_key or None,
                "quantity": line.quantity,
                "unitPrice": line.unit_price,
                "totalPrice": line.total_price,
                "isFree": line.is_free,
            }
            for line in quote.lines
        ],
        "discounts": discounts,
        "subtotal": order.subtotal,
        "totalDiscount": order.discount_total,
        "finalAmount": order.final_amount,
        "pointsEarned": order.points_earned,
        "paymentMethod": order.payment_method,
        "date": order.created_at.isoformat(),
    }


# ===========================================
# Views
# ===========================================


@method_decorator(csrf_exempt, name="dispatch")
class PrepareView(View):
    """
    POST /prepare

    Body:
        {customerId, items?: [...]} with items shaped as for /preview
    """

    def post(self, request):
        try:
            data = _json_body(request)
            customer_code = _required_str(data, "customerId")
            items = parse_items(data["items"]) if data.get("items") is not None else None
            eligibility = PricingService.prepare(customer_code, items)
        except PerkmanError as exc:
            return error_response(exc)
        except Exception:
            logger.exception("Prepare failed")
            return JsonResponse({"error": "INTERNAL_ERROR", "message": "Internal error"}, status=500)

        customer = eligibility.customer
        tier = customer.tier if customer.tier_id else None
        return JsonResponse({
            "customer": {
                "customerId": customer.code,
                "name": customer.name,
                "availablePoints": customer.points,
                "tier": {"code": tier.code, "name": tier.name} if tier else None,
            },
            "eligibleCampaigns": [
                {
                    "campaignId": c.code,
                    "name": c.name,
                    "type": c.campaign_type,
                    "discountType": c.discount_type,
                    "discountValue": c.discount_value,
                    "minPurchase": c.min_purchase,
                    "pointMultiplier": c.point_multiplier,
                    "customerUsage": c.customer_usage_count,
                }
                for c in eligibility.campaigns
            ],
            "eligibleStamps": [
                {**e.as_dict(), "canRedeem": e.available >= 1} for e in eligibility.stamps
            ],
            "eligibleRewards": [
                {
                    "rewardId": r.code,
                    "name": r.name,
                    "type": r.reward_type,
                    "value": r.value,
                    "pointsCost": r.points_cost,
                    "owned": r.owned,
                }
                for r in eligibility.rewards
            ],
            "calculations": {
                "subtotal": eligibility.subtotal,
                "maxPointDiscount": eligibility.max_point_discount,
                "pointsToEarn": eligibility.points_to_earn,
                "tierMultiplier": customer.point_multiplier,
            },
            "warnings": [w.as_dict() for w in eligibility.warnings],
        })


@method_decorator(csrf_exempt, name="dispatch")
class PreviewView(View):
    """
    POST /preview

    Body:
        {customerId, items: [{productId | menuItemKey, quantity, unitPrice?,
         productName?, category?}], selections: {usePoints?, campaignIds?,
         redeemStampIds?, rewardIds?}}
    """

    def post(self, request):
        try:
            data = _json_body(request)
            customer_code = _required_str(data, "customerId")
            items = parse_items(data.get("items"))
            selections = parse_selections(data.get("selections"))
            preview = PricingService.preview(customer_code, items, selections)
        except PerkmanError as exc:
            return error_response(exc)
        except Exception:
            logger.exception("Preview failed")
            return JsonResponse({"error": "INTERNAL_ERROR", "message": "Internal error"}, status=500)

        quote = preview.quote
        info = ReservationStore.peek(preview.reservation.token)
        body = {
            "breakdown": breakdown(quote),
            "impact": impact(quote, preview.customer.points),
            "warnings": [w.as_dict() for w in quote.warnings],
            "reservationToken": preview.reservation.token,
            "tokenInfo": {
                "expiresAt": preview.reservation.expires_at.isoformat(),
                "expiresInSeconds": info.expires_in_seconds,
                "valid": info.valid,
            },
        }
        if quote.errors:
            body["errors"] = [e.as_dict() for e in quote.errors]
        return JsonResponse(body)


@method_decorator(csrf_exempt, name="dispatch")
class CompleteView(View):
    """
    POST /complete

    Body:
        {reservationToken, orderNumber, paymentMethod?, paymentReference?, notes?}
    """

    def post(self, request):
        try:
            data = _json_body(request)
            token = _required_str(data, "reservationToken")
            order_number = _required_str(data, "orderNumber")
            result = CheckoutService.complete(
                token,
                order_number,
                payment_method=_optional_str(data, "paymentMethod") or None,
                payment_reference=_optional_str(data, "paymentReference"),
                notes=_optional_str(data, "notes"),
                created_by="api",
            )
        except PerkmanError as exc:
            if exc.status_code >= 500:
                logger.error("Complete failed: %s", exc)
            return error_response(exc)
        except Exception:
            logger.exception("Complete failed")
            return JsonResponse({"error": "INTERNAL_ERROR", "message": "Internal error"}, status=500)

        order, quote = result.order, result.quote
        body = {
            "success": True,
            "transactionId": order.pk,
            "orderNumber": order.order_number,
            "summary": {
                "totalAmount": order.subtotal,
                "discountAmount": order.discount_total,
                "finalAmount": order.final_amount,
                "pointsEarned": order.points_earned,
                "pointsUsed": order.points_used,
                "rewardPointsSpent": order.reward_points_spent,
                "newPointBalance": result.customer.points,
                "stampsUsed": len(quote.stamps),
                "campaignsApplied": [c.name for c in quote.campaigns],
                "rewardsRedeemed": [r.name for r in quote.rewards],
            },
            "receipt": receipt(result),
        }
        if result.achievements:
            body["achievements"] = result.achievements
        if result.warnings:
            body["warnings"] = [w.as_dict() for w in result.warnings]
        return JsonResponse(body, status=201)


@method_decorator(csrf_exempt, name="dispatch")
class CancelView(View):
    """POST /cancel with {orderNumber, reason?}."""

    def post(self, request):
        try:
            data = _json_body(request)
            result = CheckoutService.cancel(
                _required_str(data, "orderNumber"),
                reason=_optional_str(data, "reason"),
            )
        except PerkmanError as exc:
            return error_response(exc)
        except Exception:
            logger.exception("Cancel failed")
            return JsonResponse({"error": "INTERNAL_ERROR", "message": "Internal error"}, status=500)

        return JsonResponse({
            "success": True,
            "orderNumber": result.order.order_number,
            "pointsRefunded": result.points_refunded,
            "pointsRevoked": result.points_revoked,
        })


class StampProgressView(View):
    """GET /stamps?customerId=CUST-001"""

    def get(self, request):
        customer_code = request.GET.get("customerId", "").strip()
        if not customer_code:
            return error_response(_invalid("customerId is required", field="customerId"))
        try:
            entitlements, warnings = EntitlementService.for_customer(customer_code)
        except PerkmanError as exc:
            return error_response(exc)

        return JsonResponse({
            "customerId": customer_code,
            "stamps": [e.as_dict() for e in entitlements],
            "totalAvailable": sum(e.available for e in entitlements),
            "warnings": [w.as_dict() for w in warnings],
        })


class ReservationStatusView(View):
    """GET /reservations/<token>"""

    def get(self, request, token):
        info = ReservationStore.peek(token)
        return JsonResponse(info.as_dict(), status=404 if info.status == "unknown" else 200)
