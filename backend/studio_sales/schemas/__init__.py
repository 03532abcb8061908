"""Pydantic Schemas: request/response validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary, domain enums from core/ for enum fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
