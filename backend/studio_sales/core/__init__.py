"""Core Layer: pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, models/ or db/
    - All functions are pure and deterministic
    - Settings values are passed in by the shell, never read here

Design Decisions:
    - Functional core separated from imperative shell: commission, attribution,
      eligibility, matching and audit derivation are testable without a database
"""
