"""
Perkman engine - pure pricing computations (no database access).

    entitlements: stamp card (Buy X Get Y) availability
    stacking:     campaign -> stamp -> reward -> points pipeline
    milestones:   threshold crossings after a commit
"""
