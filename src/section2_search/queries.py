"""
Query descriptors for Section 2: Search & Reconciliation

GraphQL documents for each category list and detail page, and the
`QueryRequest` objects handed to whatever transport the caller uses. Nothing
here performs I/O; a request's ``key`` identifies the view it was built for
so stale results can be recognised.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.section1_ingestion.schemas import Category

from .config import ClientConfig, EngineConfig
from .filters import coerce_category


class CategoryQueries:
    """GraphQL documents for the four category lists."""

    AFFECTED_RELEASES = """
  query GetAffectedReleases($severity: Severity!, $limit: Int) {
    affectedReleases(severity: $severity, limit: $limit) {
      cve_id
      summary
      severity_score
      severity_rating
      package
      affected_version
      full_purl
      fixed_in
      release_name
      release_version
      project_type
      openssf_scorecard_score
      dependency_count
      synced_endpoint_count
    }
  }
"""

    SYNCED_ENDPOINTS = """
  query GetSyncedEndpoints($limit: Int) {
    syncedEndpoints(limit: $limit) {
      endpoint_name
      endpoint_url
      endpoint_type
      environment
      status
      last_sync
      release_count
      total_vulnerabilities {
        critical
        high
        medium
        low
      }
      releases {
        release_name
        release_version
      }
    }
  }
"""

    VULNERABILITIES = """
  query GetVulnerabilities($limit: Int, $org: String) {
    vulnerabilities(limit: $limit, org: $org) {
      cve_id
      summary
      severity_score
      severity_rating
      package
      affected_version
      full_purl
      fixed_in
      affected_releases
      affected_endpoints
    }
  }
"""

    MITIGATIONS = """
  query GetMitigations($limit: Int, $org: String) {
    mitigations(limit: $limit, org: $org) {
      cve_id
      summary
      severity_score
      severity_rating
      package
      affected_version
      full_purl
      fixed_in
      affected_releases
      affected_endpoints
    }
  }
"""


class DetailQueries:
    """GraphQL documents for the release and endpoint detail pages."""

    RELEASE = """
  query GetRelease($name: String!, $version: String!) {
    release(name: $name, version: $version) {
      name
      version
      project_type
      dependency_count
      openssf_scorecard_score
      synced_endpoint_count
      sbom {
        key
        content
      }
      vulnerabilities {
        cve_id
        summary
        severity_score
        severity_rating
        package
        affected_version
        full_purl
        fixed_in
      }
      synced_endpoints {
        endpoint_name
        endpoint_url
        endpoint_type
        environment
        last_sync
        status
      }
    }
  }
"""

    ENDPOINT = """
  query GetEndpointDetails($name: String!) {
    endpointDetails(name: $name) {
      endpoint_name
      endpoint_url
      endpoint_type
      environment
      status
      last_sync
      total_vulnerabilities {
        critical
        high
        medium
        low
      }
      releases {
        release_name
        release_version
        openssf_scorecard_score
        dependency_count
        last_sync
        vulnerability_count
        vulnerabilities {
          cve_id
          summary
          severity_score
          severity_rating
          package
          affected_version
          full_purl
          fixed_in
        }
      }
    }
  }
"""


# (document, operation name, takes an org variable)
_CATEGORY_OPERATIONS: dict[Category, tuple[str, str, bool]] = {
    Category.RELEASE: (CategoryQueries.AFFECTED_RELEASES, "GetAffectedReleases", False),
    Category.ENDPOINT: (CategoryQueries.SYNCED_ENDPOINTS, "GetSyncedEndpoints", False),
    Category.VULNERABILITY: (CategoryQueries.VULNERABILITIES, "GetVulnerabilities", True),
    Category.MITIGATION: (CategoryQueries.MITIGATIONS, "GetMitigations", True),
}


class QueryRequest(BaseModel):
    """One GraphQL request, ready for a transport to send."""
    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(..., description="GraphQL endpoint URL")
    operation: str = Field(..., description="GraphQL document")
    operation_name: str
    variables: dict[str, Any] = Field(default_factory=dict)

    category: Category
    scope: tuple[str, ...] = Field(default=(), description="Detail identifiers, empty for list views")
    organization: str = ""

    @property
    def key(self) -> tuple[Category, tuple[str, ...], str]:
        """Identity of the view this request serves."""
        return (self.category, self.scope, self.organization)

    def payload(self) -> dict[str, Any]:
        """JSON body of the POST request."""
        return {
            "query": self.operation,
            "operationName": self.operation_name,
            "variables": self.variables,
        }


def _organization(config: ClientConfig, org: Optional[str]) -> str:
    return org if org is not None else config.organization


def build_category_request(config: ClientConfig, category: Category | str, org: Optional[str] = None) -> QueryRequest:
    """
    Build the list request for a category.

    Args:
        config: Resolved client settings
        category: Category whose list is wanted
        org: Organization scope; defaults to the configured one

    Returns:
        QueryRequest keyed by ``(category, (), org)``

    Raises:
        UnknownCategoryError: If ``category`` is not a Category
    """
    category = coerce_category(category)
    organization = _organization(config, org)
    document, operation_name, scoped = _CATEGORY_OPERATIONS[category]

    variables: dict[str, Any] = {"limit": EngineConfig.FETCH_LIMIT}
    if category == Category.RELEASE:
        # NONE asks for every affected-release row regardless of severity
        variables["severity"] = "NONE"
    if scoped and organization:
        variables["org"] = organization

    return QueryRequest(
        endpoint=config.graphql_endpoint,
        operation=document,
        operation_name=operation_name,
        variables=variables,
        category=category,
        organization=organization,
    )


def build_release_request(
    config: ClientConfig,
    name: str,
    version: Optional[str] = None,
    org: Optional[str] = None,
) -> QueryRequest:
    """Build the release detail request; a missing version asks for the latest."""
    if not name:
        raise ValueError("Release name is required")
    version = version or EngineConfig.DEFAULT_RELEASE_VERSION

    return QueryRequest(
        endpoint=config.graphql_endpoint,
        operation=DetailQueries.RELEASE,
        operation_name="GetRelease",
        variables={"name": name, "version": version},
        category=Category.RELEASE,
        scope=(name, version),
        organization=_organization(config, org),
    )


def build_endpoint_request(config: ClientConfig, name: str, org: Optional[str] = None) -> QueryRequest:
    """Build the endpoint detail request."""
    if not name:
        raise ValueError("Endpoint name is required")

    return QueryRequest(
        endpoint=config.graphql_endpoint,
        operation=DetailQueries.ENDPOINT,
        operation_name="GetEndpointDetails",
        variables={"name": name},
        category=Category.ENDPOINT,
        scope=(name,),
        organization=_organization(config, org),
    )
