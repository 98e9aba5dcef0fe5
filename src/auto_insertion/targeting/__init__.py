# Targeting - document eligibility rules

from .matcher import TargetingMatcher

__all__ = ["TargetingMatcher"]
