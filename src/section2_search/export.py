"""
Export of result rows and release manifests.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd
from pydantic import BaseModel

from src.section1_ingestion.schemas import ReconciledRow, ReleaseDetail

logger = logging.getLogger(__name__)


def _join_lists(value):
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return value


def rows_to_frame(rows: Iterable[BaseModel], columns: Optional[list[str]] = None) -> pd.DataFrame:
    """
    Flatten model rows into a DataFrame.

    Nested objects become dotted columns (``vulnerabilities.critical``) and
    list fields are joined with ", ". Empty input gives an empty frame with
    ``columns`` (ReconciledRow's fields by default).
    """
    records = [row.model_dump(mode="json") for row in rows]
    if not records:
        return pd.DataFrame(columns=columns or list(ReconciledRow.model_fields))

    frame = pd.json_normalize(records)
    for column in frame.columns:
        if frame[column].dtype == object:
            frame[column] = frame[column].map(_join_lists)

    if columns:
        frame = frame.reindex(columns=columns)
    return frame


def export_rows_csv(rows: Iterable[BaseModel], output_file: str | Path, columns: Optional[list[str]] = None) -> Path:
    """
    Write rows to a CSV file, creating parent directories as needed.

    Returns:
        Path of the written file
    """
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    frame = rows_to_frame(rows, columns)
    frame.to_csv(output_file, index=False)
    logger.info("Exported %d rows to %s", len(frame), output_file)
    return output_file


def sbom_download_name(name: str, version: str) -> str:
    return f"{name}-{version}-sbom.json"


def write_sbom(detail: ReleaseDetail, directory: str | Path) -> Path:
    """
    Save a release's raw manifest text as ``{name}-{version}-sbom.json``.

    Raises:
        ValueError: If the release carries no SBOM content
    """
    if detail.sbom is None or not detail.sbom.content:
        raise ValueError(f"Release {detail.name}@{detail.version} has no SBOM content")

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    output_file = directory / sbom_download_name(detail.name, detail.version)

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(detail.sbom.content)

    return output_file
