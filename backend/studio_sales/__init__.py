"""Studio Sales: outcome reconciliation and data integrity for a fitness studio.

Invariants:
    - Package root contains no executable code (no import side effects)
"""
