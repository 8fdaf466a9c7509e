"""
Statement Extraction Module
"""

from .statement_extractor import (
    ExtractionStrategy,
    UtrPatternStrategy,
    UtrProximityStrategy,
    StatementExtractor,
)
from .pdf_text import read_statement_text

__all__ = [
    "ExtractionStrategy",
    "UtrPatternStrategy",
    "UtrProximityStrategy",
    "StatementExtractor",
    "read_statement_text",
]
