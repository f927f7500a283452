#!/usr/bin/env python3
"""
Security Posture Search - Simple CLI Runner

Usage:
    python run.py <category> <file_path> [query] [page]
    python run.py release-detail <file_path> [severity,...]
    python run.py endpoint-detail <file_path> [severity,...]

Examples:
    python run.py vulnerability data/vulnerabilities.json log4j
    python run.py release data/affected_releases.json "" 2
    python run.py release-detail data/release.json critical,high,clean
"""

import json
import sys
from pathlib import Path

from src.section1_ingestion import Category, Normalizer
from src.section2_search import (
    DetailFilterState,
    EngineConfig,
    build_endpoint_rows,
    build_release_rows,
    filter_records,
    new_filter_state,
    page_numbers,
    paginate,
    total_pages,
)


def usage():
    print("Usage: python run.py <category> <file_path> [query] [page]")
    print("       python run.py release-detail <file_path> [severity,...]")
    print("       python run.py endpoint-detail <file_path> [severity,...]")
    print("")
    print(f"Categories: {', '.join(c.value for c in Category)}")
    sys.exit(1)


def show_category(category: str, file_path: str, query: str, page: int):
    records = Normalizer().ingest(file_path, Category(category))
    filtered = filter_records(records, category, new_filter_state(category), query)

    pages = total_pages(len(filtered), EngineConfig.DEFAULT_PAGE_SIZE)
    print(f"Records: {len(records)}  Matching: {len(filtered)}  Pages: {pages}")
    print("-" * 50)
    for record in paginate(filtered, page, EngineConfig.DEFAULT_PAGE_SIZE):
        print(f"  {record.key}")
    print("-" * 50)
    print("Pages: " + " ".join(str(label) for label in page_numbers(page, pages)))


def show_detail(mode: str, file_path: str, severities: str | None):
    with open(file_path, "r", encoding="utf-8") as f:
        document = json.load(f)

    filters = DetailFilterState()
    if severities:
        filters.severities = severities.split(",")

    normalizer = Normalizer()
    if mode == "release-detail":
        detail = normalizer.load_release_detail(document)
        print(f"Release: {detail.name}@{detail.version}")
        rows = build_release_rows(detail, filters)
    else:
        detail = normalizer.load_endpoint_detail(document)
        print(f"Endpoint: {detail.endpoint_name}")
        rows = build_endpoint_rows(detail, filters)

    print(f"Rows: {len(rows)}")
    print("-" * 50)
    for row in rows:
        print(f"  {row.severity.value:<8} {row.score:>4.1f}  {row.cve_id:<20} {row.package_name}@{row.package_version}")


def main():
    if len(sys.argv) < 3:
        usage()

    mode, file_path = sys.argv[1], sys.argv[2]

    if not Path(file_path).exists():
        print(f"Error: File not found: {file_path}")
        sys.exit(1)

    if mode in ("release-detail", "endpoint-detail"):
        show_detail(mode, file_path, sys.argv[3] if len(sys.argv) > 3 else None)
        return

    if mode not in {c.value for c in Category}:
        print(f"Error: Unknown category: {mode}")
        usage()

    query = sys.argv[3] if len(sys.argv) > 3 else ""
    page = int(sys.argv[4]) if len(sys.argv) > 4 else 1
    show_category(mode, file_path, query, page)


if __name__ == "__main__":
    main()
