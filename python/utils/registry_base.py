"""
Capability interfaces used by the migration run.

The orchestration only depends on these narrow interfaces, so a transfer can
be backed by the helm binary, a native client library or a test double
without touching the migration logic.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from utils.chart_models import HelmChart, RegistryEndpoint, RegistrySession


class Authenticator(ABC):
    @abstractmethod
    def authenticate(self, endpoint: RegistryEndpoint) -> RegistrySession:
        """Authenticate against a registry.

        Raises:
            AuthError: if the registry rejects the credentials or cannot be reached
        """


class ChartPusher(ABC):
    @abstractmethod
    def push(self, chart_path: str, destination_ref: str, session: RegistrySession) -> None:
        """Upload a chart archive to an oci:// reference.

        Raises:
            RuntimeError: with the underlying diagnostic text on failure
        """


class ChartFetcher(ABC):
    @abstractmethod
    def fetch_chart(self, chart: HelmChart, session: RegistrySession) -> bytes:
        """Download a chart archive.

        Raises:
            FetchError: on non-200 responses or transport errors
        """


class ChartDiscoverer(ABC):
    @abstractmethod
    def discover(self, session: RegistrySession, projects: Optional[Sequence[str]] = None) -> List[HelmChart]:
        """List every chart version to migrate, in a stable order.

        Raises:
            DiscoveryError: if any project cannot be listed
        """
