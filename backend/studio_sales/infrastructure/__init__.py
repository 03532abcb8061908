"""Infrastructure Layer: database session management and structured logging.

Invariants:
    - Infrastructure never imports domain logic from core/ beyond the error types
"""
