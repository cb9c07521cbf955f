"""
Checkout service - commit and cancellation of orders.

Commit flow:
    1. Reject a known order number (idempotency key)
    2. Consume the reservation token (single winner)
    3. In one transaction: lock the customer, re-check points, re-validate
       selections, write order/usages/ledger/outbox
    4. After the transaction: milestones and tier re-evaluation (best effort)
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.utils import timezone

from perkman.adapters import get_tier_backend
from perkman.conf import perkman_settings
from perkman.engine.milestones import ProgressSnapshot, detect_milestones
from perkman.engine.stacking import Notice, PricingInput, Quote, price_order
from perkman.exceptions import PerkmanError
from perkman.models import (
    AppliedCampaign,
    Campaign,
    CampaignUsage,
    Customer,
    CustomerReward,
    EntrySource,
    EntryType,
    EventType,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Reward,
    StampUsage,
)
from perkman.money import ZERO
from perkman.services.events import EventService
from perkman.services.ledger import PointLedger
from perkman.services.pricing import PricingService
from perkman.services.reservations import ReservationStore

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    """Result of CheckoutService.complete()."""

    order: Order
    customer: Customer
    quote: Quote
    warnings: list[Notice] = field(default_factory=list)
    achievements: list[dict] = field(default_factory=list)


@dataclass
class CancelResult:
    """Result of CheckoutService.cancel()."""

    order: Order
    points_refunded: int
    points_revoked: int


class CheckoutService:
    """
    Commit orchestrator.

    Uses @classmethod for extensibility (consistent with other services).
    Every write of a commit happens inside one transaction.atomic(); a
    storage error anywhere rolls all of it back.
    """

    @classmethod
    def complete(
        cls,
        token: str,
        order_number: str,
        payment_method: str | None = None,
        payment_reference: str = "",
        notes: str = "",
        created_by: str = "",
        now=None,
    ) -> CheckoutResult:
        """
        Commit a previewed order.

        The token is consumed before the transaction starts; if the
        transaction then fails, the caller must preview again.

        Args:
            token: Reservation token from preview
            order_number: Caller-supplied unique order number
            payment_method: Payment method (default from settings)
            payment_reference: External payment reference
            notes: Free text
            created_by: Who committed the order
            now: Clock override

        Returns:
            CheckoutResult

        Raises:
            PerkmanError: DUPLICATE_ORDER, RESERVATION_INVALID,
                CUSTOMER_NOT_FOUND, INSUFFICIENT_POINTS, POINTS_CHANGED
        """
        now = now or timezone.now()
        if not order_number:
            raise PerkmanError("INVALID_REQUEST", message="orderNumber is required")

        if Order.objects.filter(order_number=order_number).exists():
            raise PerkmanError("DUPLICATE_ORDER", order_number=order_number)

        payload = ReservationStore.consume(token, now=now)
        if payload is None:
            raise PerkmanError("RESERVATION_INVALID")

        pricing = PricingInput.from_payload(payload["input"])

        with transaction.atomic():
            customer = PricingService.get_customer(pricing.customer_code, lock=True)
            before = ProgressSnapshot.of(customer)

            if payload.get("errors"):
                raise PerkmanError(
                    "INSUFFICIENT_POINTS",
                    message=payload["errors"][0]["message"],
                    available=customer.points,
                )

            debit = payload["points_to_use"] + payload["reward_points_cost"]
            if debit > customer.points:
                raise PerkmanError(
                    "INSUFFICIENT_POINTS",
                    message=(
                        f"Insufficient points. Available: {customer.points}, "
                        f"requested: {debit}"
                    ),
                    available=customer.points,
                    requested=debit,
                )

            quote, warnings = cls._revalidate(customer, pricing, now)
            if quote.errors:
                raise PerkmanError(
                    "INSUFFICIENT_POINTS",
                    message=quote.errors[0].message,
                    available=customer.points,
                )

            order = cls._write_order(
                customer,
                quote,
                order_number=order_number,
                payment_method=payment_method or perkman_settings.DEFAULT_PAYMENT_METHOD,
                payment_reference=payment_reference,
                notes=notes,
                created_by=created_by,
                now=now,
            )
            cls._write_ledger(customer, order, quote, now)

            customer.total_spent += quote.final_amount
            if quote.final_amount > 0:
                customer.visit_count += 1
            customer.last_visit = now
            customer.save(update_fields=["total_spent", "visit_count", "last_visit", "updated_at"])

            cls._publish_committed(customer, order, quote)
            after = ProgressSnapshot.of(customer)

        logger.info(
            "Order %s committed for %s: final=%s earned=%s used=%s",
            order.order_number, customer.code, order.final_amount,
            order.points_earned, order.points_used,
        )

        result = CheckoutResult(order=order, customer=customer, quote=quote, warnings=warnings)
        try:
            result.achievements = cls._achievements(customer, order, before, after)
        except Exception:
            logger.exception("Post-commit effects failed for order %s", order.order_number)
            result.achievements = []

        EventService.dispatch_on_commit()
        return result

    @classmethod
    def cancel(cls, order_number: str, reason: str = "", now=None) -> CancelResult:
        """
        Cancel a completed order and reverse its effects.

        Spent points (redemption and reward purchases) are refunded, earned
        points are revoked up to the current balance, owned reward grants
        are reopened. Usage and stamp counts drop on their own because only
        COMPLETED orders are counted.

        Raises:
            PerkmanError: ORDER_NOT_FOUND, ORDER_NOT_CANCELLABLE
        """
        now = now or timezone.now()

        with transaction.atomic():
            try:
                order = Order.objects.select_for_update().get(order_number=order_number)
            except Order.DoesNotExist:
                raise PerkmanError("ORDER_NOT_FOUND", order_number=order_number)

            if order.status != OrderStatus.COMPLETED:
                raise PerkmanError(
                    "ORDER_NOT_CANCELLABLE",
                    order_number=order_number,
                    status=order.status,
                )

            customer = Customer.objects.select_for_update().get(pk=order.customer_id)
            reference = f"order:{order.order_number}"

            refunded = order.points_used + order.reward_points_spent
            if refunded:
                PointLedger.append(
                    customer,
                    refunded,
                    EntryType.ADJUSTED,
                    EntrySource.REFUND,
                    reference=reference,
                    description=f"Refund for cancelled order {order.order_number}",
                )

            revoked = min(order.points_earned, customer.points)
            if revoked:
                PointLedger.append(
                    customer,
                    -revoked,
                    EntryType.ADJUSTED,
                    EntrySource.CANCELLATION,
                    reference=reference,
                    description=f"Points revoked for cancelled order {order.order_number}",
                )

            CustomerReward.objects.filter(order=order, purchased_with_points=False).update(
                is_redeemed=False, redeemed_at=None, order=None
            )

            customer.total_spent = max(ZERO, customer.total_spent - order.final_amount)
            if order.final_amount > 0 and customer.visit_count > 0:
                customer.visit_count -= 1
            customer.save(update_fields=["total_spent", "visit_count", "updated_at"])

            order.status = OrderStatus.CANCELLED
            order.cancelled_at = now
            order.cancel_reason = reason[:200]
            order.save(update_fields=["status", "cancelled_at", "cancel_reason"])

            EventService.publish(
                EventType.TRANSACTION_CANCELLED,
                customer=customer.code,
                order_number=order.order_number,
                points_refunded=refunded,
                points_revoked=revoked,
                reason=reason,
            )
            EventService.publish(EventType.SEGMENT_RECOMPUTE, customer=customer.code)

        logger.info(
            "Order %s cancelled: refunded=%s revoked=%s", order_number, refunded, revoked
        )
        EventService.dispatch_on_commit()
        return CancelResult(order=order, points_refunded=refunded, points_revoked=revoked)

    # ======================================================================
    # Commit steps (inside the transaction)
    # ======================================================================

    @classmethod
    def _revalidate(
        cls,
        customer: Customer,
        pricing: PricingInput,
        now,
    ) -> tuple[Quote, list[Notice]]:
        """
        Re-read selections under lock and re-price.

        Campaign rows and reward grants are locked, caps re-counted and
        stamps recomputed. Selections that no longer apply are dropped with
        a PARTIAL_APPLICATION warning. A reward reserved as owned is dropped
        rather than bought when its grant is gone, and a larger point debit
        than the preview showed is refused.
        """
        reserved = price_order(pricing)

        campaigns, campaign_notices = PricingService.campaign_offers(
            customer, [c.code for c in pricing.campaigns], now, lock=True
        )
        stamps, stamp_notices = PricingService.stamp_offers(
            customer, [s.campaign_code for s in pricing.stamps], now
        )
        rewards, reward_notices = PricingService.reward_offers(
            customer, [r.code for r in pricing.rewards], now, lock=True
        )
        # A grant shown as owned is never silently bought with points instead
        reserved_owned = {r.code for r in pricing.rewards if r.owned}
        rewards = tuple(r for r in rewards if r.owned or r.code not in reserved_owned)
        fresh = replace(
            pricing,
            customer_points=customer.points,
            campaigns=campaigns,
            stamps=stamps,
            rewards=rewards,
            notices=pricing.notices + campaign_notices + stamp_notices + reward_notices,
        )
        quote = price_order(fresh)

        warnings = []
        names = {c.code: c.name for c in reserved.campaigns}
        for code in [c.code for c in reserved.campaigns]:
            if code not in {c.code for c in quote.campaigns}:
                warnings.append(cls._dropped(names[code], code))
        applied_stamps = {s.campaign_code for s in quote.stamps}
        for stamp in reserved.stamps:
            if stamp.campaign_code not in applied_stamps:
                warnings.append(cls._dropped(stamp.campaign_name, stamp.campaign_code))
        applied_rewards = {r.code for r in quote.rewards}
        for reward in reserved.rewards:
            if reward.code not in applied_rewards:
                warnings.append(cls._dropped(reward.name, reward.code))

        if quote.points_debit > reserved.points_debit:
            raise PerkmanError(
                "POINTS_CHANGED",
                reserved=reserved.points_debit,
                current=quote.points_debit,
            )
        if quote.points_debit < reserved.points_debit:
            warnings.append(
                Notice(
                    "POINTS_CHANGED",
                    f"Points spent changed from {reserved.points_debit} to {quote.points_debit}",
                )
            )
        if quote.final_amount != reserved.final_amount:
            warnings.append(
                Notice(
                    "PRICE_CHANGED",
                    f"Final amount changed from {reserved.final_amount} to {quote.final_amount}",
                )
            )
        for warning in warnings:
            logger.warning("Commit for %s: %s", customer.code, warning.message)
        return quote, warnings

    @classmethod
    def _dropped(cls, name: str, code: str) -> Notice:
        return Notice(
            "PARTIAL_APPLICATION",
            f"{name}: no longer available, removed from the order",
            code,
        )

    @classmethod
    def _write_order(cls, customer: Customer, quote: Quote, order_number: str, now, **fields) -> Order:
        try:
            with transaction.atomic():
                order = Order.objects.create(
                    order_number=order_number,
                    customer=customer,
                    subtotal=quote.subtotal,
                    discount_total=quote.total_discount,
                    final_amount=quote.final_amount,
                    points_earned=quote.points_to_earn,
                    points_used=quote.points_to_use,
                    reward_points_spent=quote.reward_points_cost,
                    tier=customer.tier if customer.tier_id else None,
                    tier_multiplier=quote.tier_multiplier,
                    created_at=now,
                    **fields,
                )
        except IntegrityError:
            raise PerkmanError("DUPLICATE_ORDER", order_number=order_number)

        products = {
            p.code: p
            for p in Product.objects.filter(code__in=[line.product_code for line in quote.lines])
        }
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=products.get(line.product_code),
                product_code=line.product_code,
                product_name=line.product_name,
                category=line.category,
                menu_item_key=line.menu_item_key,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
                discount_amount=line.discount_amount,
                is_free=line.is_free,
            )
            for line in quote.lines
        ])

        campaigns = {
            c.code: c
            for c in Campaign.objects.filter(
                code__in=[c.code for c in quote.campaigns]
                + [s.campaign_code for s in quote.stamps]
            )
        }
        for applied in quote.campaigns:
            campaign = campaigns[applied.code]
            AppliedCampaign.objects.create(
                order=order,
                campaign=campaign,
                discount_amount=applied.discount_amount,
                points_earned=applied.points_earned,
            )
            CampaignUsage.objects.create(
                customer=customer,
                campaign=campaign,
                order=order,
                order_amount=quote.subtotal,
                discount_amount=applied.discount_amount,
            )

        for stamp in quote.stamps:
            campaign = campaigns[stamp.campaign_code]
            AppliedCampaign.objects.create(
                order=order,
                campaign=campaign,
                discount_amount=stamp.value,
                free_items=[{
                    "productId": stamp.product_code,
                    "name": stamp.product_name,
                    "quantity": stamp.quantity,
                }],
            )
            StampUsage.objects.create(
                customer=customer,
                campaign=campaign,
                order=order,
                product_code=stamp.product_code,
                product_name=stamp.product_name,
                quantity=stamp.quantity,
                value=stamp.value,
            )

        for redemption in quote.rewards:
            if redemption.owned:
                grant = (
                    CustomerReward.objects.redeemable(now)
                    .select_for_update()
                    .filter(customer=customer, reward__code=redemption.code)
                    .order_by("granted_at", "pk")
                    .first()
                )
                grant.is_redeemed = True
                grant.redeemed_at = now
                grant.order = order
                grant.save(update_fields=["is_redeemed", "redeemed_at", "order"])
            else:
                CustomerReward.objects.create(
                    customer=customer,
                    reward=Reward.objects.get(code=redemption.code),
                    is_redeemed=True,
                    redeemed_at=now,
                    purchased_with_points=True,
                    points_cost=redemption.points_cost,
                    order=order,
                )
        return order

    @classmethod
    def _write_ledger(cls, customer: Customer, order: Order, quote: Quote, now) -> None:
        reference = f"order:{order.order_number}"

        if quote.points_to_use:
            PointLedger.append(
                customer,
                -quote.points_to_use,
                EntryType.SPENT,
                EntrySource.PURCHASE,
                reference=reference,
                description=f"Points used on order {order.order_number}",
            )
        for redemption in quote.rewards:
            if redemption.points_cost:
                PointLedger.append(
                    customer,
                    -redemption.points_cost,
                    EntryType.SPENT,
                    EntrySource.REWARD,
                    reference=reference,
                    description=f"Reward purchased: {redemption.name}",
                )
        if quote.points_to_earn:
            PointLedger.append(
                customer,
                quote.points_to_earn,
                EntryType.EARNED,
                EntrySource.PURCHASE,
                reference=reference,
                description=f"Points earned on order {order.order_number}",
                expires_at=now + timedelta(days=perkman_settings.POINT_EXPIRY_DAYS),
            )

    @classmethod
    def _publish_committed(cls, customer: Customer, order: Order, quote: Quote) -> None:
        if quote.points_debit:
            EventService.publish(
                EventType.POINTS_SPENT,
                customer=customer.code,
                order_number=order.order_number,
                points=quote.points_debit,
                balance=customer.points,
            )
        if quote.points_to_earn:
            EventService.publish(
                EventType.POINTS_EARNED,
                customer=customer.code,
                order_number=order.order_number,
                points=quote.points_to_earn,
                balance=customer.points,
            )
        EventService.publish(
            EventType.TRANSACTION_COMPLETED,
            customer=customer.code,
            order_number=order.order_number,
            subtotal=order.subtotal,
            discount_total=order.discount_total,
            final_amount=order.final_amount,
        )
        EventService.publish(EventType.SEGMENT_RECOMPUTE, customer=customer.code)

    # ======================================================================
    # Post-commit effects
    # ======================================================================

    @classmethod
    def _achievements(
        cls,
        customer: Customer,
        order: Order,
        before: ProgressSnapshot,
        after: ProgressSnapshot,
    ) -> list[dict]:
        """Milestones crossed by this order and a possible tier upgrade."""
        achievements = []
        for milestone in detect_milestones(before, after, perkman_settings.MILESTONES):
            EventService.publish(
                EventType.MILESTONE_REACHED,
                customer=customer.code,
                order_number=order.order_number,
                **milestone.as_dict(),
            )
            achievements.append({
                "type": "MILESTONE",
                "milestone": milestone.kind,
                "threshold": milestone.threshold,
                "message": f"{milestone.kind.replace('_', ' ').title()} reached {milestone.threshold}",
            })

        change = get_tier_backend().check_and_upgrade(
            customer.code, reason=f"order:{order.order_number}"
        )
        if change is not None:
            achievements.append(change.as_dict())
        return achievements
