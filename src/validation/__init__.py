"""Input validation package."""

from src.validation.validator import LedgerValidator, is_before_joining

__all__ = ["LedgerValidator", "is_before_joining"]
