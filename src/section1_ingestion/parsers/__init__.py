"""
Parsers for documents attached to fetched records.

Each parser takes raw document text and returns a list of typed entries
together with ParserMetadata; malformed input is recorded, not raised.
"""

from .base_parser import BaseParser
from .sbom_parser import SBOMParser, parse_manifest

__all__ = [
    "BaseParser",
    "SBOMParser",
    "parse_manifest",
]
