# Initial schema for perkman

import uuid
from decimal import Decimal

import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Tier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=50, unique=True, verbose_name="code")),
                ("name", models.CharField(max_length=100, verbose_name="name")),
                ("level", models.PositiveIntegerField(db_index=True, default=0, verbose_name="level")),
                ("point_multiplier", models.DecimalField(decimal_places=2, default=Decimal("1.00"), max_digits=5, verbose_name="point multiplier")),
                ("min_total_spent", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="minimum total spent")),
                ("min_visit_count", models.PositiveIntegerField(default=0, verbose_name="minimum visits")),
                ("min_points", models.PositiveIntegerField(default=0, verbose_name="minimum points")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
            ],
            options={
                "verbose_name": "tier",
                "verbose_name_plural": "tiers",
                "ordering": ["level"],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(help_text="Unique customer code (ex: CUST-001)", max_length=50, unique=True, verbose_name="code")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("first_name", models.CharField(max_length=100, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=100, verbose_name="last name")),
                ("email", models.EmailField(blank=True, db_index=True, max_length=254, verbose_name="email")),
                ("phone", models.CharField(blank=True, db_index=True, max_length=20, verbose_name="phone")),
                ("birth_date", models.DateField(blank=True, null=True, verbose_name="birth date")),
                ("points", models.IntegerField(default=0, verbose_name="points")),
                ("total_spent", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="total spent")),
                ("visit_count", models.PositiveIntegerField(default=0, verbose_name="visit count")),
                ("last_visit", models.DateTimeField(blank=True, null=True, verbose_name="last visit")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "tier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="customers",
                        to="perkman.tier",
                        verbose_name="tier",
                    ),
                ),
            ],
            options={
                "verbose_name": "customer",
                "verbose_name_plural": "customers",
                "ordering": ["first_name", "last_name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("points__gte", 0)),
                        name="perkman_customer_points_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=50, unique=True, verbose_name="code")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("category", models.CharField(blank=True, db_index=True, max_length=100, verbose_name="category")),
                ("price", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="price")),
                ("menu_item_key", models.CharField(blank=True, help_text="POS menu key resolved to this product", max_length=100, null=True, unique=True, verbose_name="menu item key")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
            ],
            options={
                "verbose_name": "product",
                "verbose_name_plural": "products",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Campaign",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=50, unique=True, verbose_name="code")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                (
                    "campaign_type",
                    models.CharField(
                        choices=[
                            ("discount", "Discount"),
                            ("stamp", "Buy X Get Y (stamps)"),
                            ("loyalty_points", "Loyalty points"),
                            ("time_based", "Time based"),
                            ("birthday", "Birthday"),
                            ("combo", "Combo deal"),
                        ],
                        default="discount",
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("percentage", "Percentage"), ("fixed_amount", "Fixed amount")],
                        default="percentage",
                        max_length=20,
                        verbose_name="discount type",
                    ),
                ),
                ("discount_value", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="discount value")),
                ("min_purchase", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="minimum purchase")),
                ("max_usage", models.PositiveIntegerField(blank=True, null=True, verbose_name="max usage")),
                ("max_usage_per_customer", models.PositiveIntegerField(blank=True, null=True, verbose_name="max usage per customer")),
                ("point_multiplier", models.DecimalField(decimal_places=2, default=1, max_digits=5, verbose_name="point multiplier")),
                ("buy_quantity", models.PositiveIntegerField(blank=True, null=True, verbose_name="buy quantity")),
                ("get_quantity", models.PositiveIntegerField(default=1, verbose_name="get quantity")),
                ("target_categories", models.JSONField(blank=True, default=list, help_text="List of product category names", verbose_name="target categories")),
                ("valid_days", models.JSONField(blank=True, default=list, help_text="ISO weekdays (1=Monday, 7=Sunday); empty = every day", verbose_name="valid days")),
                ("valid_from_time", models.TimeField(blank=True, null=True, verbose_name="valid from")),
                ("valid_until_time", models.TimeField(blank=True, null=True, verbose_name="valid until")),
                ("starts_at", models.DateTimeField(blank=True, null=True, verbose_name="starts at")),
                ("ends_at", models.DateTimeField(blank=True, null=True, verbose_name="ends at")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "target_products",
                    models.ManyToManyField(
                        blank=True,
                        related_name="stamp_campaigns",
                        to="perkman.product",
                        verbose_name="target products",
                    ),
                ),
                (
                    "free_products",
                    models.ManyToManyField(
                        blank=True,
                        related_name="free_in_campaigns",
                        to="perkman.product",
                        verbose_name="free products",
                    ),
                ),
            ],
            options={
                "verbose_name": "campaign",
                "verbose_name_plural": "campaigns",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Reward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=50, unique=True, verbose_name="code")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                (
                    "reward_type",
                    models.CharField(
                        choices=[
                            ("discount", "Discount"),
                            ("free_product", "Free product"),
                            ("other", "Other"),
                        ],
                        default="discount",
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("value", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="value")),
                ("points_cost", models.PositiveIntegerField(default=0, help_text="0 = only available as a grant", verbose_name="points cost")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
            ],
            options={
                "verbose_name": "reward",
                "verbose_name_plural": "rewards",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=100, unique=True, verbose_name="order number")),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="subtotal")),
                ("discount_total", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="discount total")),
                ("final_amount", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="final amount")),
                ("points_earned", models.PositiveIntegerField(default=0, verbose_name="points earned")),
                ("points_used", models.PositiveIntegerField(default=0, verbose_name="points used")),
                ("reward_points_spent", models.PositiveIntegerField(default=0, verbose_name="reward points spent")),
                ("payment_method", models.CharField(default="cash", max_length=30, verbose_name="payment method")),
                ("payment_reference", models.CharField(blank=True, max_length=100, verbose_name="payment reference")),
                (
                    "status",
                    models.CharField(
                        choices=[("completed", "Completed"), ("cancelled", "Cancelled")],
                        db_index=True,
                        default="completed",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("tier_multiplier", models.DecimalField(decimal_places=2, default=1, max_digits=5, verbose_name="tier multiplier")),
                ("notes", models.TextField(blank=True, verbose_name="notes")),
                ("created_at", models.DateTimeField(db_index=True, verbose_name="created at")),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True, verbose_name="cancelled at")),
                ("cancel_reason", models.CharField(blank=True, max_length=200, verbose_name="cancel reason")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="perkman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="perkman.tier",
                        verbose_name="tier",
                    ),
                ),
            ],
            options={
                "verbose_name": "order",
                "verbose_name_plural": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["customer", "status", "created_at"],
                        name="perkman_ord_custome_4b7a1e_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_code", models.CharField(db_index=True, max_length=50, verbose_name="product code")),
                ("product_name", models.CharField(max_length=200, verbose_name="product name")),
                ("category", models.CharField(blank=True, db_index=True, max_length=100, verbose_name="category")),
                ("menu_item_key", models.CharField(blank=True, max_length=100, verbose_name="menu item key")),
                ("quantity", models.PositiveIntegerField(verbose_name="quantity")),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="unit price")),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="total price")),
                ("discount_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="discount amount")),
                ("is_free", models.BooleanField(default=False, verbose_name="free")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="perkman.order",
                        verbose_name="order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="perkman.product",
                        verbose_name="product",
                    ),
                ),
            ],
            options={
                "verbose_name": "order item",
                "verbose_name_plural": "order items",
            },
        ),
        migrations.CreateModel(
            name="AppliedCampaign",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("discount_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="discount amount")),
                ("points_earned", models.PositiveIntegerField(default=0, verbose_name="points earned")),
                ("free_items", models.JSONField(blank=True, default=list, verbose_name="free items")),
                (
                    "campaign",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="applications",
                        to="perkman.campaign",
                        verbose_name="campaign",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="applied_campaigns",
                        to="perkman.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "applied campaign",
                "verbose_name_plural": "applied campaigns",
            },
        ),
        migrations.CreateModel(
            name="CampaignUsage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_amount", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="order amount")),
                ("discount_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="discount amount")),
                ("used_at", models.DateTimeField(auto_now_add=True, verbose_name="used at")),
                (
                    "campaign",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usages",
                        to="perkman.campaign",
                        verbose_name="campaign",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="campaign_usages",
                        to="perkman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="campaign_usages",
                        to="perkman.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "campaign usage",
                "verbose_name_plural": "campaign usages",
                "indexes": [
                    models.Index(fields=["campaign", "customer"], name="perkman_cam_campaig_5d1c2f_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StampUsage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_code", models.CharField(max_length=50, verbose_name="product code")),
                ("product_name", models.CharField(max_length=200, verbose_name="product name")),
                ("quantity", models.PositiveIntegerField(default=1, verbose_name="quantity")),
                ("value", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="value")),
                ("used_at", models.DateTimeField(auto_now_add=True, verbose_name="used at")),
                (
                    "campaign",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stamp_usages",
                        to="perkman.campaign",
                        verbose_name="campaign",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stamp_usages",
                        to="perkman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stamp_usages",
                        to="perkman.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "stamp usage",
                "verbose_name_plural": "stamp usages",
                "indexes": [
                    models.Index(fields=["campaign", "customer"], name="perkman_sta_campaig_8e3b90_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerReward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("is_redeemed", models.BooleanField(db_index=True, default=False, verbose_name="redeemed")),
                ("redeemed_at", models.DateTimeField(blank=True, null=True, verbose_name="redeemed at")),
                ("expires_at", models.DateTimeField(blank=True, null=True, verbose_name="expires at")),
                ("purchased_with_points", models.BooleanField(default=False, verbose_name="purchased with points")),
                ("points_cost", models.PositiveIntegerField(default=0, verbose_name="points cost")),
                ("granted_at", models.DateTimeField(auto_now_add=True, verbose_name="granted at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rewards",
                        to="perkman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reward_redemptions",
                        to="perkman.order",
                        verbose_name="order",
                    ),
                ),
                (
                    "reward",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="grants",
                        to="perkman.reward",
                        verbose_name="reward",
                    ),
                ),
            ],
            options={
                "verbose_name": "customer reward",
                "verbose_name_plural": "customer rewards",
                "ordering": ["granted_at"],
            },
        ),
        migrations.CreateModel(
            name="PointLedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.IntegerField(help_text="Positive for credits, negative for debits", verbose_name="amount")),
                (
                    "entry_type",
                    models.CharField(
                        choices=[
                            ("earned", "Earned"),
                            ("spent", "Spent"),
                            ("expired", "Expired"),
                            ("adjusted", "Adjusted"),
                        ],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("purchase", "Purchase"),
                            ("reward", "Reward purchase"),
                            ("refund", "Refund"),
                            ("cancellation", "Cancellation"),
                            ("expiration", "Expiration"),
                            ("manual", "Manual"),
                        ],
                        max_length=20,
                        verbose_name="source",
                    ),
                ),
                ("reference", models.CharField(blank=True, help_text="External reference (ex: order:ORD-123)", max_length=100, verbose_name="reference")),
                ("balance_after", models.IntegerField(verbose_name="balance after")),
                ("expires_at", models.DateTimeField(blank=True, null=True, verbose_name="expires at")),
                ("description", models.CharField(blank=True, max_length=200, verbose_name="description")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="perkman.customer",
                        verbose_name="customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "point ledger entry",
                "verbose_name_plural": "point ledger entries",
                "ordering": ["-created_at", "-pk"],
                "indexes": [
                    models.Index(fields=["customer", "-created_at"], name="perkman_poi_custome_a2f6c4_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("token", models.CharField(max_length=64, unique=True, verbose_name="token")),
                ("payload", models.JSONField(encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name="payload")),
                ("created_at", models.DateTimeField(verbose_name="created at")),
                ("expires_at", models.DateTimeField(db_index=True, verbose_name="expires at")),
                ("consumed_at", models.DateTimeField(blank=True, null=True, verbose_name="consumed at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reservations",
                        to="perkman.customer",
                        verbose_name="customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "reservation",
                "verbose_name_plural": "reservations",
                "db_table": "perkman_reservation",
            },
        ),
        migrations.CreateModel(
            name="OutboxEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("points.earned", "Points earned"),
                            ("points.spent", "Points spent"),
                            ("transaction.completed", "Transaction completed"),
                            ("transaction.cancelled", "Transaction cancelled"),
                            ("milestone.reached", "Milestone reached"),
                            ("tier.changed", "Tier changed"),
                            ("segment.recompute", "Segment recompute requested"),
                        ],
                        max_length=40,
                        verbose_name="type",
                    ),
                ),
                ("payload", models.JSONField(default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name="payload")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("dispatched_at", models.DateTimeField(blank=True, null=True, verbose_name="dispatched at")),
                ("attempts", models.PositiveIntegerField(default=0, verbose_name="attempts")),
                ("last_error", models.TextField(blank=True, verbose_name="last error")),
            ],
            options={
                "verbose_name": "outbox event",
                "verbose_name_plural": "outbox events",
                "db_table": "perkman_outbox_event",
                "ordering": ["pk"],
                "indexes": [
                    models.Index(fields=["dispatched_at", "created_at"], name="perkman_out_dispatc_7c0d1b_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TierHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reason", models.CharField(max_length=200, verbose_name="reason")),
                ("triggered_by", models.CharField(max_length=50, verbose_name="triggered by")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tier_history",
                        to="perkman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "from_tier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="perkman.tier",
                        verbose_name="from tier",
                    ),
                ),
                (
                    "to_tier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="perkman.tier",
                        verbose_name="to tier",
                    ),
                ),
            ],
            options={
                "verbose_name": "tier change",
                "verbose_name_plural": "tier changes",
                "ordering": ["-created_at"],
            },
        ),
    ]
