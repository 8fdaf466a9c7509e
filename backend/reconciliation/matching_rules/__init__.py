"""
Matching Rules Module
"""

from .utr_rules import UTRMatchingRules, utr_rules

__all__ = ["UTRMatchingRules", "utr_rules"]
