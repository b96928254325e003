"""
Error types and actionable error messages for the chart migration.

Run-scoped errors (configuration, authentication, discovery) abort the whole
migration and carry suggested fixes for the operator. Chart-scoped errors
(fetch, persist, push, cleanup) are recorded against a single chart and the
run moves on to the next one.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    CONNECTION = "connection"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ActionableError(Exception):
    """Exception with actionable guidance for users"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize actionable error

        Args:
            message: Primary error message
            category: Error category for classification
            suggestions: List of suggested fixes
            details: Additional context information
        """
        self.message = message
        self.category = category
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [f"❌ {self.message}"]

        if self.suggestions:
            lines.append("\n💡 Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("\n📋 Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


class ConfigValidationError(ActionableError):
    """Raised when configuration validation fails"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        super().__init__(message, **kwargs)


class AuthError(ActionableError):
    """Authentication against a registry failed. Fatal for the run."""

    def __init__(self, endpoint: str, cause: str, **kwargs):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(**kwargs)


class DiscoveryError(ActionableError):
    """Charts could not be listed on the source registry. Fatal for the run."""

    def __init__(self, project: Optional[str], cause: str, **kwargs):
        self.project = project
        self.cause = cause
        super().__init__(**kwargs)


class ChartTransferError(Exception):
    """A single chart could not be migrated; the run continues with the next chart."""

    step = "transfer"

    def __init__(self, chart, cause: str):
        self.chart = chart
        self.cause = cause
        super().__init__(f"{self.step} failed for {chart} ({chart.chart_file_name()}): {cause}")


class FetchError(ChartTransferError):
    """Chart archive could not be downloaded from the source registry"""

    step = "fetch"

    def __init__(self, chart, cause: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        if cause is None:
            cause = f"received status {status_code}"
        super().__init__(chart, cause)


class PersistError(ChartTransferError):
    """Chart archive could not be written to local staging storage"""

    step = "persist"


class PushError(ChartTransferError):
    """Chart archive could not be pushed to the destination registry"""

    step = "push"


class CleanupError(ChartTransferError):
    """Staged chart archive could not be removed. Logged only."""

    step = "cleanup"


def create_registry_auth_error(registry_url: str, error: Exception, stderr: str = "") -> AuthError:
    """Create actionable error for registry authentication failures"""
    cause = (stderr or str(error)).strip()
    error_str = cause.lower()

    suggestions = [
        f"Verify the registry URL is correct: {registry_url}",
        "Verify the username and password (flags, environment or config file)",
        "Check that the account is allowed to push/pull charts in the target projects",
        "Run 'helm registry login' manually to reproduce the failure",
    ]

    if isinstance(error, FileNotFoundError) or "helm binary not found" in error_str:
        suggestions.insert(0, "Install helm (v3.8+) or point --helm-binary / HELM_BINARY at it")
    if "x509" in error_str or "certificate" in error_str:
        suggestions.insert(0, "Use --source-insecure / --destination-insecure for self-signed certificates")
    if "timeout" in error_str or "timed out" in error_str:
        suggestions.insert(1, "Check network connectivity to the registry")

    return AuthError(
        endpoint=registry_url,
        cause=cause,
        message=f"Failed to authenticate with registry at {registry_url}",
        category=ErrorCategory.TIMEOUT if "timed out" in error_str else ErrorCategory.AUTHENTICATION,
        suggestions=suggestions,
        details={
            "registry_url": registry_url,
            "error_type": type(error).__name__,
            "error_message": cause,
        },
    )


def _discovery_category(error_str: str) -> ErrorCategory:
    if "401" in error_str or "403" in error_str:
        return ErrorCategory.PERMISSION
    if "timeout" in error_str or "timed out" in error_str:
        return ErrorCategory.TIMEOUT
    return ErrorCategory.CONNECTION


def create_discovery_error(registry_url: str, project: Optional[str], error: Exception) -> DiscoveryError:
    """Create actionable error for chart listing failures on the source registry"""
    error_str = str(error).lower()
    scope = f"project '{project}'" if project else "projects"

    suggestions = [
        f"Verify the source registry URL is correct: {registry_url}",
        "Check that ChartMuseum is enabled on the source Harbor instance",
        "Verify the source credentials can read the project",
    ]

    if project:
        suggestions.insert(1, f"Verify the project '{project}' exists on the source registry")
    if "401" in error_str or "403" in error_str:
        suggestions.insert(0, "Check --source-username / --source-password")
    if "timeout" in error_str or "timed out" in error_str:
        suggestions.insert(1, "Check network connectivity to the source registry")

    return DiscoveryError(
        project=project,
        cause=str(error),
        message=f"Failed to list Helm charts for {scope} on {registry_url}",
        category=_discovery_category(error_str),
        suggestions=suggestions,
        details={
            "registry_url": registry_url,
            "project": project or "(all)",
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def create_config_error(errors: List[str]) -> ConfigValidationError:
    """Create a validation error listing every configuration problem found"""
    return ConfigValidationError(
        "Configuration validation failed:\n  " + "\n  ".join(errors),
        suggestions=[
            "Check the command line flags",
            "Check the SOURCE_REGISTRY_*, DESTINATION_REGISTRY_* and HELM_BINARY environment variables",
            "Check the config file (--config or CONFIG_FILE, see config-example.yaml)",
        ],
    )
