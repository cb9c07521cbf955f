"""Pytest fixtures for Perkman tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import transaction
from django.utils import timezone

from perkman.models import (
    Campaign,
    CampaignType,
    Customer,
    CustomerReward,
    DiscountType,
    EntrySource,
    EntryType,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Reward,
    RewardType,
    Tier,
)
from perkman.services.ledger import PointLedger


@pytest.fixture
def tier_gold(db):
    """Gold tier: 1.5x points from 1000 spent."""
    return Tier.objects.create(
        code="gold",
        name="Gold",
        level=2,
        point_multiplier=Decimal("1.50"),
        min_total_spent=Decimal("1000.00"),
    )


@pytest.fixture
def customer(db):
    """Create a test customer without points."""
    return Customer.objects.create(
        code="CUST-001",
        first_name="Ayla",
        last_name="Demir",
        email="ayla@example.com",
        phone="5551234567",
    )


@pytest.fixture
def customer_b(db):
    """Second customer."""
    return Customer.objects.create(code="CUST-002", first_name="Deniz")


@pytest.fixture
def grant_points():
    """Credit points through the ledger (the only way to change a balance)."""

    def _grant(customer, points, expires_at=None):
        with transaction.atomic():
            locked = Customer.objects.select_for_update().get(pk=customer.pk)
            PointLedger.append(
                locked,
                points,
                EntryType.EARNED,
                EntrySource.MANUAL,
                description="Welcome bonus",
                expires_at=expires_at,
            )
        customer.refresh_from_db()
        return customer

    return _grant


@pytest.fixture
def rich_customer(customer, grant_points):
    """Customer with 500 points."""
    return grant_points(customer, 500)


@pytest.fixture
def meal(db):
    return Product.objects.create(
        code="MEAL", name="Tasting Menu", category="food", price=Decimal("1000.00")
    )


@pytest.fixture
def coffee(db):
    return Product.objects.create(
        code="COFFEE",
        name="Turkish Coffee",
        category="drinks",
        price=Decimal("12.50"),
        menu_item_key="pos-coffee",
    )


@pytest.fixture
def burger(db):
    return Product.objects.create(
        code="BURGER", name="Burger", category="food", price=Decimal("150.00")
    )


@pytest.fixture
def campaign_20(db):
    """20% off with a 100 minimum purchase."""
    return Campaign.objects.create(
        code="SAVE20",
        name="20% off",
        campaign_type=CampaignType.DISCOUNT,
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("20"),
        min_purchase=Decimal("100"),
    )


@pytest.fixture
def campaign_fixed(db):
    """Fixed 30 off."""
    return Campaign.objects.create(
        code="MINUS30",
        name="30 off",
        campaign_type=CampaignType.DISCOUNT,
        discount_type=DiscountType.FIXED_AMOUNT,
        discount_value=Decimal("30"),
    )


@pytest.fixture
def loyalty_campaign(db):
    """Double points."""
    return Campaign.objects.create(
        code="DOUBLE",
        name="Double points",
        campaign_type=CampaignType.LOYALTY_POINTS,
        point_multiplier=Decimal("2.00"),
    )


@pytest.fixture
def stamp_campaign(db, coffee):
    """Buy 5 coffees, get 1 free."""
    campaign = Campaign.objects.create(
        code="COFFEE-CARD",
        name="Coffee card",
        campaign_type=CampaignType.STAMP,
        buy_quantity=5,
        get_quantity=1,
        starts_at=timezone.now() - timedelta(days=30),
    )
    campaign.target_products.add(coffee)
    campaign.free_products.add(coffee)
    return campaign


@pytest.fixture
def reward_50(db):
    """Fixed 50 discount reward, grant only."""
    return Reward.objects.create(
        code="FIFTY",
        name="50 off voucher",
        reward_type=RewardType.DISCOUNT,
        value=Decimal("50.00"),
    )


@pytest.fixture
def owned_reward_50(customer, reward_50):
    return CustomerReward.objects.create(customer=customer, reward=reward_50)


@pytest.fixture
def reward_shop(db):
    """Reward purchasable for 300 points."""
    return Reward.objects.create(
        code="DESSERT",
        name="Dessert voucher",
        reward_type=RewardType.DISCOUNT,
        value=Decimal("40.00"),
        points_cost=300,
    )


@pytest.fixture
def history_order():
    """Create a past order directly (purchase history for stamp cards)."""
    counter = {"n": 0}

    def _create(customer, product, quantity, is_free=False, status=OrderStatus.COMPLETED, created_at=None):
        counter["n"] += 1
        total = product.price * quantity
        order = Order.objects.create(
            order_number=f"HIST-{counter['n']}",
            customer=customer,
            subtotal=total,
            final_amount=Decimal("0") if is_free else total,
            status=status,
            created_at=created_at or timezone.now() - timedelta(days=1),
        )
        OrderItem.objects.create(
            order=order,
            product=product,
            product_code=product.code,
            product_name=product.name,
            category=product.category,
            quantity=quantity,
            unit_price=product.price,
            total_price=total,
            is_free=is_free,
        )
        return order

    return _create
