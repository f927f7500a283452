"""
Configuration for Section 2: Search & Reconciliation

Holds the result-view constants (page sizes, pagination window, default
detail severities, score buckets) and the query-service client settings.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict

# Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv()


class EngineConfig:
    """Constants for the filter/sort/paginate pipeline."""

    # Page-size selector options; the first is the default
    PAGE_SIZE_OPTIONS: tuple[int, ...] = (12, 24, 48, 96)
    DEFAULT_PAGE_SIZE: int = 12

    # Page-number bar shows every page up to this many, then compresses
    MAX_VISIBLE_PAGES: int = 7
    ELLIPSIS: str = "..."

    # Row limit requested per category list
    FETCH_LIMIT: int = 1000

    # Severities pre-selected on release/endpoint detail views
    DETAIL_SEVERITIES: tuple[str, ...] = ("critical", "high", "medium", "low", "clean")

    # OpenSSF scorecard buckets: high >= 8.0, medium >= 6.0, low below
    OPENSSF_HIGH_THRESHOLD: float = 8.0
    OPENSSF_MEDIUM_THRESHOLD: float = 6.0

    # Release detail requests without a version ask for this one
    DEFAULT_RELEASE_VERSION: str = "latest"


class ClientConfig(BaseModel):
    """
    Query-service settings, resolved once per session.

    Built by `load_client_config()` and passed to the query builders and
    result views that need it.
    """
    model_config = ConfigDict(frozen=True)

    graphql_endpoint: str = "http://localhost:3000/api/v1/graphql"
    rest_endpoint: str = "http://localhost:3000/api/v1"
    organization: str = ""


def load_client_config(organization: Optional[str] = None) -> ClientConfig:
    """
    Resolve client settings from the environment.

    Args:
        organization: Overrides DASHBOARD_ORG when given

    Returns:
        Frozen ClientConfig
    """
    defaults = ClientConfig()
    return ClientConfig(
        graphql_endpoint=os.getenv("RUNTIME_GRAPHQL_ENDPOINT", defaults.graphql_endpoint),
        rest_endpoint=os.getenv("RUNTIME_REST_ENDPOINT", defaults.rest_endpoint),
        organization=organization if organization is not None else os.getenv("DASHBOARD_ORG", ""),
    )
