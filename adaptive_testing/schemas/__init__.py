"""
Pydantic schemas for session persistence.
"""
from .sessions import (
    AbilityEstimateSchema,
    ItemSchema,
    ResponseSchema,
    SessionSnapshot,
)

__all__ = [
    "AbilityEstimateSchema",
    "ItemSchema",
    "ResponseSchema",
    "SessionSnapshot",
]
