"""Services Layer: async database shell around the pure core.

Invariants:
    - Services own every read and write; decisions are delegated to core/
    - Audit checks registered through an explicit dict (no auto-discovery)
"""
