"""
Base parser class that all document parsers inherit from.
"""

from abc import ABC, abstractmethod
from typing import Optional
import hashlib
import time

from ..schemas import ParserMetadata


class BaseParser(ABC):
    """
    Abstract base class for parsers of documents attached to records.

    Documents arrive as text already fetched from the query service, so a
    parser is constructed from the raw content rather than a file path.
    Each parser must implement the `parse` method.
    """

    # Override in subclasses
    PARSER_NAME: str = "base"
    PARSER_VERSION: str = "1.0.0"

    def __init__(self, content: Optional[str], source_name: str = "<inline>"):
        """
        Initialize parser with document content.

        Args:
            content: Raw document text (may be None or empty)
            source_name: Label used in warnings and log messages
        """
        self.content = content or ""
        self.source_name = source_name
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def get_content_hash(self) -> str:
        """Calculate SHA-256 hash of the content for deduplication."""
        return hashlib.sha256(self.content.encode("utf-8")).hexdigest()

    def add_warning(self, message: str) -> None:
        """Add a warning message during parsing."""
        self.warnings.append(message)

    def add_error(self, message: str) -> None:
        """Add a non-fatal error message during parsing."""
        self.errors.append(message)

    @abstractmethod
    def parse(self) -> list:
        """
        Parse the document.

        Returns:
            List of parsed entries; never raises for malformed input
        """
        pass

    def run(self) -> tuple[list, ParserMetadata]:
        """
        Execute the parser and return entries with metadata.

        Returns:
            Tuple of (entries, metadata)
        """
        start_time = time.time()

        entries = self.parse()

        processing_time_ms = int((time.time() - start_time) * 1000)

        metadata = ParserMetadata(
            parser_name=self.PARSER_NAME,
            parser_version=self.PARSER_VERSION,
            processing_time_ms=processing_time_ms,
            warnings=self.warnings,
            errors=self.errors,
        )

        return entries, metadata
