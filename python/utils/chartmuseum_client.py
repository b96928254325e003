"""
HTTP client for Harbor's legacy ChartMuseum chart repository.

Provides chart discovery through the Harbor API and chart archive downloads
from the `/chartrepo/` endpoints. Credentials are attached to every request
with HTTP basic auth; nothing relies on cookies or other session state.
"""

from typing import Any, List, Optional, Sequence
from urllib.parse import quote

import requests

from utils.chart_models import HelmChart, RegistrySession
from utils.error_utils import FetchError, create_discovery_error
from utils.logging_utils import get_logger
from utils.registry_base import ChartDiscoverer, ChartFetcher

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 10
DEFAULT_FETCH_TIMEOUT = 5


class ChartMuseumClient(ChartFetcher, ChartDiscoverer):
    """Reads charts from a Harbor-hosted ChartMuseum repository"""

    def __init__(self, fetch_timeout: float = DEFAULT_FETCH_TIMEOUT, page_size: int = DEFAULT_PAGE_SIZE):
        self.fetch_timeout = fetch_timeout
        self.page_size = page_size

    @staticmethod
    def chart_url(session: RegistrySession, chart: HelmChart) -> str:
        """Download URL of a chart archive, e.g. https://harbor/chartrepo/db/charts/redis-1.0.0.tgz"""
        return (
            f"{session.endpoint.base_url}/chartrepo/{quote(chart.project, safe='')}"
            f"/charts/{quote(chart.chart_file_name(), safe='')}"
        )

    def _get(self, session: RegistrySession, url: str, params: Optional[dict] = None) -> requests.Response:
        return requests.get(
            url,
            params=params,
            auth=session.auth,
            timeout=self.fetch_timeout,
            verify=session.endpoint.tls_verify,
        )

    def fetch_chart(self, chart: HelmChart, session: RegistrySession) -> bytes:
        """Download the chart archive bytes.

        Raises:
            FetchError: with the status code for any response other than 200 OK,
                or with the transport error text
        """
        url = self.chart_url(session, chart)
        logger.debug(f"Fetching {url}")
        try:
            response = self._get(session, url)
        except requests.RequestException as e:
            raise FetchError(chart, cause=str(e))

        if response.status_code != requests.codes.ok:
            raise FetchError(chart, status_code=response.status_code)
        return response.content

    def _get_json(self, session: RegistrySession, url: str, project: Optional[str], params: Optional[dict] = None) -> Any:
        try:
            response = self._get(session, url, params=params)
            if response.status_code != requests.codes.ok:
                raise requests.HTTPError(f"{response.status_code} response from {url}", response=response)
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise create_discovery_error(session.endpoint.url, project, e)

    def _get_json_list(
        self, session: RegistrySession, url: str, project: Optional[str], params: Optional[dict] = None
    ) -> List[Any]:
        """Like _get_json, but the payload must be a JSON list (null counts as empty)"""
        items = self._get_json(session, url, project, params=params)
        if items is None:
            return []
        if not isinstance(items, list):
            raise create_discovery_error(
                session.endpoint.url, project, ValueError(f"Expected a JSON list from {url}, got {type(items).__name__}")
            )
        return items

    def list_projects(self, session: RegistrySession) -> List[str]:
        """List every project on the source registry, page by page.

        Raises:
            DiscoveryError: if any page cannot be fetched
        """
        url = f"{session.endpoint.base_url}/api/v2.0/projects"
        projects = []
        page = 1

        while True:
            items = self._get_json_list(session, url, None, params={"page": page, "page_size": self.page_size})
            projects.extend(item["name"] for item in items if isinstance(item, dict) and item.get("name"))
            if len(items) < self.page_size:
                break
            page += 1

        logger.info(f"Found {len(projects)} projects on {session.endpoint.url}")
        return projects

    def list_project_charts(self, session: RegistrySession, project: str) -> List[HelmChart]:
        """List every version of every chart in one project.

        Raises:
            DiscoveryError: if the chart list or a version list cannot be fetched
        """
        base = f"{session.endpoint.base_url}/api/chartrepo/{quote(project, safe='')}/charts"
        charts = []

        for entry in self._get_json_list(session, base, project):
            name = entry.get("name") if isinstance(entry, dict) else None
            if not name:
                logger.warning(f"Skipping chart entry without a name in project {project}: {entry}")
                continue

            for version_entry in self._get_json_list(session, f"{base}/{quote(name, safe='')}", project):
                version = version_entry.get("version") if isinstance(version_entry, dict) else None
                if not version:
                    logger.warning(f"Skipping {project}/{name} entry without a version")
                    continue
                try:
                    charts.append(HelmChart(name=name, project=project, version=version))
                except (ValueError, TypeError) as e:
                    logger.warning(f"Skipping {project}/{name} {version}: {e}")

        logger.info(f"  Found {len(charts)} chart versions in {project}")
        return charts

    def discover(self, session: RegistrySession, projects: Optional[Sequence[str]] = None) -> List[HelmChart]:
        """Discover the charts to migrate, project by project in the given order.

        With no projects given, every project on the registry is scanned.
        """
        if not projects:
            logger.info("No projects specified, discovering all projects on the source registry...")
            projects = self.list_projects(session)

        charts = []
        for project in projects:
            logger.info(f"Listing charts for project {project}...")
            charts.extend(self.list_project_charts(session, project))
        return charts
