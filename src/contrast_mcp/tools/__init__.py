"""Contrast tools built on the validation and runtime layers.

Each tool is a plain function taking a ``ServerContext`` plus the raw
arguments as received from the transport, and returns a response envelope.
"""

from .applications import get_application, search_applications
from .attacks import AttackSummary, search_attacks
from .caches import clear_caches
from .context import ContrastApi, ServerContext
from .cves import list_applications_by_cve
from .libraries import list_application_libraries, list_library_observations
from .routes import RouteCoverage, get_route_coverage
from .sessions import get_session_metadata
from .vulnerabilities import Environment, SessionMatcher, Severity, VulnerabilityView, search_app_vulnerabilities
from .vulnerability_details import VulnerabilityDetails, get_vulnerability

__all__ = [
    "AttackSummary",
    "ContrastApi",
    "Environment",
    "RouteCoverage",
    "ServerContext",
    "SessionMatcher",
    "Severity",
    "VulnerabilityDetails",
    "VulnerabilityView",
    "clear_caches",
    "get_application",
    "get_route_coverage",
    "get_session_metadata",
    "get_vulnerability",
    "list_application_libraries",
    "list_applications_by_cve",
    "list_library_observations",
    "search_app_vulnerabilities",
    "search_applications",
    "search_attacks",
]
