"""
Perkman signals - public event API.

Emitted by EventService.dispatch_pending() when an outbox event is relayed,
never inside the commit transaction. Every signal is sent with
sender=OutboxEvent, event=<OutboxEvent>, payload=<dict>.

- points_earned: Customer earned points on an order
- points_spent: Customer spent points (redemption or reward purchase)
- transaction_completed: Order committed
- transaction_cancelled: Order cancelled and reversed
- milestone_reached: Spend/visit/points threshold crossed
- tier_changed: Customer moved to a new tier
- segment_recompute_requested: Customer segments should be recomputed
"""

from django.dispatch import Signal

points_earned = Signal()
points_spent = Signal()
transaction_completed = Signal()
transaction_cancelled = Signal()
milestone_reached = Signal()
tier_changed = Signal()
segment_recompute_requested = Signal()
