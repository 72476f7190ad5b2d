"""SQLModel сущности MemeRadar."""

from .base import TimeStampedModel, as_utc, utcnow  # noqa: F401
from .token import ENRICHMENT_FIELDS, Token  # noqa: F401

__all__ = [
    "ENRICHMENT_FIELDS",
    "TimeStampedModel",
    "Token",
    "as_utc",
    "utcnow",
]
