"""
Prediction Schema
=================

One document per submitted price target in the `predictions` collection.
Analyst display fields are joined at read time and never stored here.

Indexes:
--------
1. createdAt (DESC) - Ledger ordering
2. userId + createdAt (DESC) - Per-analyst history
"""
from pydantic import BaseModel, Field, field_validator

from config import CONFIDENCE_LEVELS, DEFAULT_CONFIDENCE, DEFAULT_TIMEFRAME, TIMEFRAMES


class PredictionCreate(BaseModel):
    """Payload handed to the submission service, already validated by the form"""
    userId: str
    stock: str = Field(..., min_length=1)
    currentPrice: float
    targetPrice: float
    timeframe: str = DEFAULT_TIMEFRAME
    reasoning: str = Field(..., min_length=1)
    confidence: str = DEFAULT_CONFIDENCE

    @field_validator("stock")
    @classmethod
    def uppercase_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("timeframe")
    @classmethod
    def known_timeframe(cls, v: str) -> str:
        if v not in TIMEFRAMES:
            raise ValueError(f"timeframe must be one of {TIMEFRAMES}")
        return v

    @field_validator("confidence")
    @classmethod
    def known_confidence(cls, v: str) -> str:
        if v not in CONFIDENCE_LEVELS:
            raise ValueError(f"confidence must be one of {CONFIDENCE_LEVELS}")
        return v
