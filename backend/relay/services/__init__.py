"""Services Layer — shared relay state and the per-connection relay engine.

Invariants:
    - ConnectionRegistry and PendingDeliveryStore are the only shared mutable state
    - Both are owned instances injected into RelayEngine (no module-level dicts)
"""
