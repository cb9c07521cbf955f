"""Perkman services.

    pricing:      PricingService.preview (read-only, issues a reservation)
    checkout:     CheckoutService.complete / cancel (the only writers of orders)
    reservations: ReservationStore (single-use tokens)
    entitlements: EntitlementService (stamp card availability)
    ledger:       PointLedger (the only writer of Customer.points)
    tiers:        TierService (default TierBackend)
    events:       EventService (outbox and relay)
"""
