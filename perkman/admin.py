"""Perkman admin.

Configuration models (tiers, products, campaigns, rewards) are editable.
History (orders, ledger, tier changes, reservations, outbox) is read-only:
it is written by the checkout services only.
"""

from django.contrib import admin
from django.utils.html import format_html

from perkman.models import (
    Campaign,
    Customer,
    CustomerReward,
    Order,
    OrderItem,
    OutboxEvent,
    PointLedgerEntry,
    Product,
    Reservation,
    Reward,
    Tier,
    TierHistory,
)


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


def customer_link(obj):
    from django.urls import reverse

    url = reverse("admin:perkman_customer_change", args=[obj.customer.pk])
    return format_html('<a href="{}">{}</a>', url, obj.customer.code)


customer_link.short_description = "Customer"


def points_display(obj):
    if obj.amount > 0:
        return format_html('<span style="color:green">+{}</span>', obj.amount)
    return format_html('<span style="color:red">{}</span>', obj.amount)


points_display.short_description = "Points"


# ===========================================
# Customers and tiers
# ===========================================


class PointLedgerInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = PointLedgerEntry
    extra = 0
    fields = ["created_at", "entry_type", "source", "amount", "balance_after", "description"]
    readonly_fields = fields
    ordering = ["-created_at", "-pk"]
    max_num = 20
    verbose_name_plural = "Point ledger (last 20)"


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "tier", "points", "total_spent", "visit_count", "is_active"]
    list_filter = ["tier", "is_active"]
    search_fields = ["code", "first_name", "last_name", "phone", "email"]
    readonly_fields = [
        "uuid",
        "points",
        "total_spent",
        "visit_count",
        "last_visit",
        "created_at",
        "updated_at",
    ]
    inlines = [PointLedgerInline]

    fieldsets = [
        ("Identification", {"fields": ["code", "uuid", "first_name", "last_name", "birth_date"]}),
        ("Contact", {"fields": ["email", "phone"]}),
        ("Loyalty", {"fields": ["tier", "points", "total_spent", "visit_count", "last_visit"]}),
        (
            "System",
            {
                "fields": ["is_active", "metadata", "created_at", "updated_at"],
                "classes": ["collapse"],
            },
        ),
    ]


@admin.register(Tier)
class TierAdmin(admin.ModelAdmin):
    list_display = [
        "code",
        "name",
        "level",
        "point_multiplier",
        "min_total_spent",
        "min_visit_count",
        "min_points",
        "is_active",
    ]
    list_filter = ["is_active"]
    ordering = ["level"]


@admin.register(TierHistory)
class TierHistoryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["created_at", customer_link, "from_tier", "to_tier", "reason", "triggered_by"]
    search_fields = ["customer__code", "reason"]


# ===========================================
# Catalog, campaigns and rewards
# ===========================================


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "category", "price", "menu_item_key", "is_active"]
    list_filter = ["category", "is_active"]
    search_fields = ["code", "name", "menu_item_key"]


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "campaign_type", "discount_display", "starts_at", "ends_at", "is_active"]
    list_filter = ["campaign_type", "is_active"]
    search_fields = ["code", "name"]
    filter_horizontal = ["target_products", "free_products"]

    fieldsets = [
        (None, {"fields": ["code", "name", "campaign_type", "is_active"]}),
        ("Discount", {"fields": ["discount_type", "discount_value", "min_purchase", "point_multiplier"]}),
        ("Usage caps", {"fields": ["max_usage", "max_usage_per_customer"]}),
        (
            "Stamp card",
            {"fields": ["buy_quantity", "get_quantity", "target_products", "target_categories", "free_products"]},
        ),
        (
            "Validity",
            {"fields": ["starts_at", "ends_at", "valid_days", "valid_from_time", "valid_until_time"]},
        ),
    ]

    def discount_display(self, obj):
        if obj.discount_type == "percentage":
            return f"{obj.discount_value}%"
        return obj.discount_value

    discount_display.short_description = "Discount"


@admin.register(Reward)
class RewardAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "reward_type", "value", "points_cost", "is_active"]
    list_filter = ["reward_type", "is_active"]
    search_fields = ["code", "name"]


@admin.register(CustomerReward)
class CustomerRewardAdmin(admin.ModelAdmin):
    list_display = [customer_link, "reward", "is_redeemed", "expires_at", "purchased_with_points", "granted_at"]
    list_filter = ["is_redeemed", "purchased_with_points"]
    search_fields = ["customer__code", "reward__code"]
    raw_id_fields = ["customer", "order"]
    readonly_fields = ["is_redeemed", "redeemed_at", "purchased_with_points", "points_cost", "order"]


# ===========================================
# History (read-only)
# ===========================================


class OrderItemInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ["product_code", "product_name", "quantity", "unit_price", "total_price", "is_free"]
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "order_number",
        customer_link,
        "subtotal",
        "discount_total",
        "final_amount",
        "points_earned",
        "points_used",
        "status",
        "created_at",
    ]
    list_filter = ["status", "payment_method"]
    search_fields = ["order_number", "customer__code"]
    date_hierarchy = "created_at"
    inlines = [OrderItemInline]


@admin.register(PointLedgerEntry)
class PointLedgerEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "created_at",
        customer_link,
        "entry_type",
        "source",
        points_display,
        "balance_after",
        "reference",
    ]
    list_filter = ["entry_type", "source"]
    search_fields = ["customer__code", "reference", "description"]
    date_hierarchy = "created_at"


@admin.register(Reservation)
class ReservationAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["token_short", customer_link, "created_at", "expires_at", "consumed_at"]
    search_fields = ["token", "customer__code"]
    exclude = ["payload"]

    def token_short(self, obj):
        return obj.token[:12] + "..."

    token_short.short_description = "Token"


@admin.register(OutboxEvent)
class OutboxEventAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["pk", "event_type", "created_at", "dispatched_at", "attempts"]
    list_filter = ["event_type"]
    readonly_fields = ["event_type", "payload", "created_at", "dispatched_at", "attempts", "last_error"]
