"""Tests for the discount stacking pipeline (pure, no database)."""

import json
from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder

from perkman.engine.stacking import (
    CampaignOffer,
    OrderLine,
    PricingInput,
    PricingState,
    RewardOffer,
    StampOffer,
    apply_campaign_discounts,
    apply_point_redemption,
    apply_reward_redemptions,
    apply_stamp_redemptions,
    campaign_discount,
    compute_points_to_earn,
    price_order,
)


def line(price, quantity=1, code="MEAL"):
    return OrderLine(
        product_code=code,
        product_name=code.title(),
        quantity=quantity,
        unit_price=Decimal(price),
    )


def percent(code="SAVE20", value="20", **kwargs):
    return CampaignOffer(
        code=code,
        name=f"{value}% off",
        campaign_type="discount",
        discount_type="percentage",
        discount_value=Decimal(value),
        **kwargs,
    )


def fixed(code="MINUS", value="30", **kwargs):
    return CampaignOffer(
        code=code,
        name=f"{value} off",
        campaign_type="discount",
        discount_type="fixed_amount",
        discount_value=Decimal(value),
        **kwargs,
    )


def loyalty(code, multiplier):
    return CampaignOffer(
        code=code,
        name=f"x{multiplier}",
        campaign_type="loyalty_points",
        point_multiplier=Decimal(multiplier),
    )


def pricing(*lines, **kwargs):
    kwargs.setdefault("customer_points", 0)
    return PricingInput(customer_code="CUST-001", lines=tuple(lines), **kwargs)


class TestFullPipeline:
    """Tests for price_order()."""

    def test_campaign_reward_points_scenario(self):
        """1000 -> 20% (800) -> 50 reward (750) -> 200 points (730)."""
        quote = price_order(
            pricing(
                line("1000.00"),
                customer_points=500,
                campaigns=(percent(min_purchase=Decimal("100")),),
                rewards=(RewardOffer("FIFTY", "50 off", "discount", Decimal("50"), owned=True),),
                points_requested=200,
            )
        )

        assert [d.amount for d in quote.discounts] == [
            Decimal("200.00"),
            Decimal("50.00"),
            Decimal("20.00"),
        ]
        assert quote.final_amount == Decimal("730.00")
        assert quote.total_discount == Decimal("270.00")
        assert quote.points_to_use == 200
        assert quote.points_to_earn == 73
        assert quote.errors == ()
        assert quote.warnings == ()

    def test_tier_multiplier_applies_to_points_earned(self):
        """Points earned = floor(final * rate * tier multiplier)."""
        quote = price_order(pricing(line("730.00"), tier_multiplier=Decimal("1.5")))

        assert quote.points_to_earn == 109

    def test_stage_order_is_fixed(self):
        """Campaign percentage is computed before reward and points."""
        quote = price_order(
            pricing(
                line("100.00"),
                customer_points=100,
                campaigns=(percent(value="50"),),
                rewards=(RewardOffer("R", "R", "discount", Decimal("10"), owned=True),),
                points_requested=100,
            )
        )

        assert [d.kind for d in quote.discounts] == ["campaign", "reward", "points"]
        assert quote.final_amount == Decimal("30.00")

    def test_final_amount_never_negative(self):
        """Discounts larger than the order bring it to zero, not below."""
        quote = price_order(
            pricing(
                line("20.00"),
                customer_points=1000,
                campaigns=(fixed(value="15"),),
                rewards=(RewardOffer("R", "R", "discount", Decimal("50"), owned=True),),
                points_requested=1000,
            )
        )

        assert quote.final_amount == Decimal("0.00")
        assert quote.points_to_use == 0
        assert quote.points_to_earn == 0
        assert quote.total_discount == Decimal("20.00")

    def test_payload_round_trip_reprices_identically(self):
        """A stored PricingInput gives the same quote after JSON storage."""
        original = pricing(
            line("1000.00"),
            line("12.50", quantity=3, code="COFFEE"),
            customer_points=500,
            campaigns=(percent(min_purchase=Decimal("100")), loyalty("DOUBLE", "2")),
            stamps=(StampOffer("CARD", "Card", 1, "COFFEE", "Coffee", Decimal("12.50")),),
            rewards=(RewardOffer("SHOP", "Shop", "discount", Decimal("40"), 300),),
            points_requested=100,
            tier_multiplier=Decimal("1.5"),
        )
        stored = json.loads(json.dumps(original.to_payload(), cls=DjangoJSONEncoder))

        restored = PricingInput.from_payload(stored)

        assert restored == original
        assert price_order(restored) == price_order(original)


class TestCampaignStage:
    """Tests for apply_campaign_discounts()."""

    def start(self, remaining="1000.00"):
        return PricingState(remaining=Decimal(remaining), points_budget=0)

    def test_percentage_rounds_half_up(self):
        assert campaign_discount(Decimal("33.33"), "percentage", Decimal("20")) == Decimal("6.67")

    def test_fixed_capped_at_remaining(self):
        """S - min(D, S) is never negative."""
        state = apply_campaign_discounts(
            self.start("20.00"), (fixed(value="30"),), Decimal("20.00")
        )

        assert state.remaining == Decimal("0.00")
        assert state.discounts[0].amount == Decimal("20.00")

    def test_percentages_compound_on_remaining(self):
        """Second campaign works on what the first left."""
        state = apply_campaign_discounts(
            self.start(),
            (percent("A", "10"), percent("B", "10")),
            Decimal("1000.00"),
        )

        assert [d.amount for d in state.discounts] == [Decimal("100.00"), Decimal("90.00")]
        assert state.remaining == Decimal("810.00")

    def test_min_purchase_not_met_is_warning(self):
        state = apply_campaign_discounts(
            self.start("50.00"),
            (percent(min_purchase=Decimal("100")),),
            Decimal("50.00"),
        )

        assert state.discounts == ()
        assert state.errors == ()
        assert [w.code for w in state.warnings] == ["MIN_PURCHASE_NOT_MET"]

    def test_customer_cap_reached_is_warning(self):
        offer = percent(max_usage_per_customer=1, customer_usage_count=1)

        state = apply_campaign_discounts(self.start(), (offer,), Decimal("1000.00"))

        assert state.remaining == Decimal("1000.00")
        assert state.warnings[0].code == "USAGE_LIMIT_REACHED"

    def test_global_cap_reached_is_warning(self):
        offer = percent(max_usage=10, usage_count=10)

        state = apply_campaign_discounts(self.start(), (offer,), Decimal("1000.00"))

        assert state.campaigns == ()
        assert state.warnings[0].code == "USAGE_LIMIT_REACHED"

    def test_blocked_campaign_is_warning(self):
        offer = percent(blocked_reason="CAMPAIGN_WRONG_DAY")

        state = apply_campaign_discounts(self.start(), (offer,), Decimal("1000.00"))

        assert state.warnings[0].code == "CAMPAIGN_WRONG_DAY"
        assert state.discounts == ()

    def test_stamp_campaign_selected_as_discount_is_warning(self):
        offer = CampaignOffer(code="CARD", name="Card", campaign_type="stamp")

        state = apply_campaign_discounts(self.start(), (offer,), Decimal("1000.00"))

        assert state.warnings[0].code == "CAMPAIGN_IS_STAMP_CARD"

    def test_zero_effect_discount_is_warning(self):
        state = apply_campaign_discounts(
            self.start("0.00"), (fixed(value="10"),), Decimal("0.00")
        )

        assert state.warnings[0].code == "CAMPAIGN_NO_EFFECT"

    def test_loyalty_multipliers_take_maximum(self):
        """Loyalty multipliers do not stack additively."""
        quote = price_order(
            pricing(line("100.00"), campaigns=(loyalty("X2", "2"), loyalty("X3", "3")))
        )

        assert quote.loyalty_multiplier == Decimal("3")
        assert quote.points_to_earn == 30
        assert quote.final_amount == Decimal("100.00")
        bonus = {c.code: c.points_earned for c in quote.campaigns}
        assert bonus == {"X2": 10, "X3": 20}


class TestStampStage:
    """Tests for apply_stamp_redemptions()."""

    def test_available_stamp_adds_free_line(self):
        offer = StampOffer("CARD", "Coffee card", 1, "COFFEE", "Coffee", Decimal("12.50"))
        state = PricingState(remaining=Decimal("100.00"), points_budget=0)

        state = apply_stamp_redemptions(state, (offer,))

        assert state.remaining == Decimal("100.00")
        assert state.free_lines[0].is_free is True
        assert state.free_lines[0].discount_amount == Decimal("12.50")
        assert state.discounts[0].amount == Decimal("12.50")

    def test_free_line_counted_in_total_discount_only(self):
        quote = price_order(
            pricing(
                line("100.00"),
                stamps=(StampOffer("CARD", "Card", 2, "COFFEE", "Coffee", Decimal("12.50")),),
            )
        )

        assert quote.final_amount == Decimal("100.00")
        assert quote.total_discount == Decimal("12.50")
        assert quote.subtotal == Decimal("100.00")
        assert len(quote.lines) == 2

    def test_no_stamp_available_is_warning(self):
        offer = StampOffer("CARD", "Card", 0, "COFFEE", "Coffee", Decimal("12.50"))

        state = apply_stamp_redemptions(
            PricingState(remaining=Decimal("10.00"), points_budget=0), (offer,)
        )

        assert state.free_lines == ()
        assert state.warnings[0].code == "NO_STAMPS_AVAILABLE"


class TestRewardStage:
    """Tests for apply_reward_redemptions()."""

    def test_owned_reward_costs_no_points(self):
        state = apply_reward_redemptions(
            PricingState(remaining=Decimal("100.00"), points_budget=0),
            (RewardOffer("R", "R", "discount", Decimal("50"), owned=True),),
        )

        assert state.remaining == Decimal("50.00")
        assert state.rewards[0].points_cost == 0

    def test_purchasable_reward_reserves_points(self):
        state = apply_reward_redemptions(
            PricingState(remaining=Decimal("100.00"), points_budget=500),
            (RewardOffer("SHOP", "Shop", "discount", Decimal("40"), points_cost=300),),
        )

        assert state.points_budget == 200
        assert state.remaining == Decimal("60.00")

    def test_unaffordable_reward_is_warning(self):
        state = apply_reward_redemptions(
            PricingState(remaining=Decimal("100.00"), points_budget=100),
            (RewardOffer("SHOP", "Shop", "discount", Decimal("40"), points_cost=300),),
        )

        assert state.rewards == ()
        assert state.errors == ()
        assert state.warnings[0].code == "REWARD_UNAVAILABLE"

    def test_non_discount_reward_redeemed_without_discount(self):
        state = apply_reward_redemptions(
            PricingState(remaining=Decimal("100.00"), points_budget=0),
            (RewardOffer("TSHIRT", "T-shirt", "other", owned=True),),
        )

        assert state.remaining == Decimal("100.00")
        assert state.rewards[0].discount_amount == Decimal("0.00")

    def test_reward_purchase_limits_points_budget(self):
        """Points reserved by a reward purchase are not available for redemption."""
        quote = price_order(
            pricing(
                line("100.00"),
                customer_points=400,
                rewards=(RewardOffer("SHOP", "Shop", "discount", Decimal("40"), points_cost=300),),
                points_requested=200,
            )
        )

        assert [e.code for e in quote.errors] == ["INSUFFICIENT_POINTS"]


class TestPointStage:
    """Tests for apply_point_redemption()."""

    def test_request_above_balance_is_error_not_clamped(self):
        state = apply_point_redemption(
            PricingState(remaining=Decimal("100.00"), points_budget=50),
            points_requested=51,
            point_value=Decimal("0.1"),
        )

        assert state.errors[0].code == "INSUFFICIENT_POINTS"
        assert state.points_used == 0
        assert state.remaining == Decimal("100.00")

    def test_points_used_rounds_up(self):
        """used = ceil(applied / point value)."""
        state = apply_point_redemption(
            PricingState(remaining=Decimal("5.05"), points_budget=100),
            points_requested=100,
            point_value=Decimal("0.1"),
        )

        assert state.remaining == Decimal("0.00")
        assert state.points_used == 51

    def test_error_keeps_breakdown(self):
        """The quote is still complete when points are insufficient."""
        quote = price_order(
            pricing(
                line("100.00"),
                customer_points=10,
                campaigns=(percent(value="10"),),
                points_requested=500,
            )
        )

        assert quote.has_errors
        assert quote.final_amount == Decimal("90.00")
        assert quote.points_to_earn == 9


class TestPointsToEarn:
    def test_floor(self):
        assert compute_points_to_earn(Decimal("99.99"), Decimal("0.1")) == 9

    def test_zero_amount(self):
        assert compute_points_to_earn(Decimal("0.00"), Decimal("0.1"), Decimal("2")) == 0

    def test_input_is_not_mutated(self):
        """Stages return new states."""
        start = PricingState(remaining=Decimal("100.00"), points_budget=0)
        after = apply_campaign_discounts(start, (percent(value="10"),), Decimal("100.00"))

        assert start.remaining == Decimal("100.00")
        assert after is not start
        assert after.remaining == Decimal("90.00")
