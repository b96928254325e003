"""
Data classes shared by the chart migration components.

- HelmChart: identity of one chart version to migrate
- RegistryEndpoint / RegistrySession: a registry and an authenticated handle to it
- ChartFailure / MigrationOutcome: per-run aggregate of transfer results
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

CHART_ARCHIVE_EXTENSION = "tgz"


@dataclass(frozen=True)
class HelmChart:
    """One chart version hosted in a ChartMuseum project."""

    name: str
    project: str
    version: str

    def __post_init__(self):
        missing = [attr for attr in ("name", "project", "version") if not getattr(self, attr)]
        if missing:
            raise ValueError(f"HelmChart fields must be non-empty: {', '.join(missing)}")
        # name and version end up in the staged file name
        for attr in ("name", "version"):
            value = getattr(self, attr)
            if "/" in value or "\\" in value or ".." in value:
                raise ValueError(f"HelmChart {attr} must not contain path separators or '..': {value!r}")

    def chart_file_name(self) -> str:
        """Archive file name ChartMuseum serves this chart under (e.g. redis-1.0.0.tgz)."""
        return f"{self.name}-{self.version}.{CHART_ARCHIVE_EXTENSION}"

    def __str__(self) -> str:
        return f"{self.project}/{self.name}:{self.version}"


@dataclass(frozen=True)
class RegistryEndpoint:
    """Connection details for one side of the migration."""

    url: str
    username: str = ""
    password: str = ""
    tls_verify: bool = True

    @property
    def host(self) -> str:
        """Registry host (and optional path) without scheme, as helm expects it."""
        host = self.url
        for scheme in ("https://", "http://"):
            if host.startswith(scheme):
                host = host[len(scheme):]
                break
        return host.rstrip("/")

    @property
    def base_url(self) -> str:
        """URL for HTTP calls; plain hosts default to https."""
        url = self.url.rstrip("/")
        if not url.startswith(("http://", "https://")):
            url = f"https://{url}"
        return url

    @property
    def has_credentials(self) -> bool:
        return bool(self.username)

    def __repr__(self) -> str:
        # Keep passwords out of logs and tracebacks
        return f"RegistryEndpoint(url={self.url!r}, username={self.username!r}, tls_verify={self.tls_verify})"


@dataclass(frozen=True)
class RegistrySession:
    """Handle to a registry that has passed authentication.

    Read-only once created; the same session is shared by every transfer in a run.
    """

    endpoint: RegistryEndpoint
    anonymous: bool = False

    @property
    def auth(self):
        """Basic-auth tuple for requests, or None for anonymous sessions."""
        if self.anonymous:
            return None
        return (self.endpoint.username, self.endpoint.password)


@dataclass(frozen=True)
class ChartFailure:
    """Diagnostic record for a chart that could not be migrated."""

    chart: HelmChart
    step: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "chart": str(self.chart),
            "file": self.chart.chart_file_name(),
            "step": self.step,
            "error": self.error,
        }


@dataclass
class MigrationOutcome:
    """Aggregate result of a migration run.

    Counters only grow while charts are processed; once finalize() is called the
    outcome is read-only.
    """

    total: int = 0
    succeeded: int = 0
    failures: List[ChartFailure] = field(default_factory=list)
    finalized: bool = False

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def _check_mutable(self) -> None:
        if self.finalized:
            raise RuntimeError("MigrationOutcome has already been reported and cannot change")

    def record_success(self) -> None:
        self._check_mutable()
        self.succeeded += 1

    def record_failure(self, chart: HelmChart, step: str, error: str) -> None:
        self._check_mutable()
        self.failures.append(ChartFailure(chart=chart, step=step, error=error))

    def finalize(self) -> "MigrationOutcome":
        self._check_mutable()
        if self.succeeded + self.failed != self.total:
            raise RuntimeError(
                f"Outcome is incomplete: {self.succeeded} succeeded + {self.failed} failed != {self.total} total"
            )
        self.finalized = True
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failures": [failure.to_dict() for failure in self.failures],
        }
