"""
SBOM Parser for release dependency manifests.

Reads the CycloneDX-style JSON document stored on a release and flattens its
``components`` array into ManifestPackage entries.
"""

import json
import logging
import re
from typing import Any, Optional

from ..schemas import ManifestPackage
from .base_parser import BaseParser

logger = logging.getLogger(__name__)

_TRAILING_VERSION = re.compile(r"(?<=[^/])@[^@]*$")


def strip_version_suffix(identifier: str) -> str:
    """
    Drop a trailing ``@version`` together with any qualifiers or subpath after it.

    An "@" opening a scope (at the start or right after "/") is kept.
    """
    return _TRAILING_VERSION.sub("", identifier)


class SBOMParser(BaseParser):
    """
    Parser for a release's software bill of materials.

    Rules applied per component:
    - ``type == "file"`` entries are skipped (not dependencies)
    - identifier is ``purl``, else ``bom-ref``, else ``name``
    - a non package-URL identifier containing "/" keeps only its last segment
    - any trailing ``@version`` is stripped from the display name
    - a missing version becomes ``"unknown"``

    Malformed JSON yields an empty list; the failure is logged and recorded
    in the parser's errors, never raised.
    """

    PARSER_NAME = "sbom_parser"
    PARSER_VERSION = "1.0.0"

    PURL_PREFIX = "pkg:"
    UNKNOWN_VERSION = "unknown"

    def _component_identifier(self, component: dict[str, Any]) -> Optional[str]:
        """Pick the preferred identifier and reduce it to a display name."""
        identifier = component.get("purl") or component.get("bom-ref") or component.get("name")
        if not identifier:
            return None

        identifier = str(identifier)
        if "/" in identifier and not identifier.startswith(self.PURL_PREFIX):
            identifier = identifier.split("/")[-1] or identifier

        return strip_version_suffix(identifier)

    def _load_components(self) -> list:
        if not self.content.strip():
            self.add_warning("SBOM content is empty")
            return []

        try:
            document = json.loads(self.content)
        except json.JSONDecodeError as e:
            self.add_error(f"Failed to parse SBOM {self.source_name}: {e}")
            logger.warning("Failed to parse SBOM %s: %s", self.source_name, e)
            return []

        if not isinstance(document, dict):
            self.add_error(f"SBOM {self.source_name} is not a JSON object")
            logger.warning("SBOM %s is not a JSON object", self.source_name)
            return []

        components = document.get("components") or []
        if not isinstance(components, list):
            self.add_error(f"SBOM {self.source_name} has a non-list 'components' field")
            logger.warning("SBOM %s has a non-list 'components' field", self.source_name)
            return []

        return components

    def parse(self) -> list[ManifestPackage]:
        """Parse the manifest and return its dependency packages in document order."""
        packages: list[ManifestPackage] = []

        for index, component in enumerate(self._load_components()):
            if not isinstance(component, dict):
                self.add_warning(f"Skipping component {index}: not an object")
                continue

            if component.get("type") == "file":
                continue

            name = self._component_identifier(component)
            if not name:
                self.add_warning(f"Skipping component {index}: no purl, bom-ref or name")
                continue

            purl = component.get("purl")
            packages.append(ManifestPackage(
                name=name,
                version=str(component.get("version") or self.UNKNOWN_VERSION),
                purl=str(purl) if purl else name,
            ))

        return packages


def parse_manifest(content: Optional[str], source_name: str = "<inline>") -> list[ManifestPackage]:
    """
    Convenience function to parse a manifest document.

    Parser warnings such as skipped components are logged.

    Args:
        content: Raw SBOM JSON text (None or empty yields no packages)
        source_name: Label used in log messages

    Returns:
        Ordered list of ManifestPackage entries

    Example:
        >>> parse_manifest('{"components": [{"name": "lodash", "version": "4.17.20"}]}')
        [ManifestPackage(name='lodash', version='4.17.20', purl='lodash')]
    """
    packages, metadata = SBOMParser(content, source_name=source_name).run()
    for warning in metadata.warnings:
        logger.warning("SBOM %s: %s", source_name, warning)
    return packages
