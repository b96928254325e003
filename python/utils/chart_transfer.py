"""
Migration of a single chart: fetch from ChartMuseum, stage locally, push to OCI, clean up.
"""

import os
import shutil
import tempfile
from typing import Optional

from utils.chart_models import HelmChart, RegistrySession
from utils.error_utils import CleanupError, PersistError, PushError
from utils.logging_utils import get_logger
from utils.registry_base import ChartFetcher, ChartPusher

STAGED_FILE_MODE = 0o600

logger = get_logger(__name__)


def build_destination_ref(session: RegistrySession, chart: HelmChart, dest_path: str = "") -> str:
    """OCI reference a chart is pushed to: oci://<host>/<project><dest_path>"""
    return f"oci://{session.endpoint.host}/{chart.project}{dest_path}"


class ChartTransfer:
    """Moves one chart from the source to the destination registry.

    Steps run in order and stop at the first failure. Each transfer stages its
    archive in a private directory, so concurrent transfers never share a path.
    """

    def __init__(self, fetcher: ChartFetcher, pusher: ChartPusher, staging_dir: Optional[str] = None):
        self.fetcher = fetcher
        self.pusher = pusher
        self.staging_dir = staging_dir

    def transfer(
        self,
        chart: HelmChart,
        source_session: RegistrySession,
        dest_session: RegistrySession,
        dest_path: str = "",
    ) -> None:
        """Migrate one chart.

        Raises:
            FetchError, PersistError, PushError: the first step that failed
        """
        staged_path = None
        try:
            data = self.fetcher.fetch_chart(chart, source_session)
            staged_path = self._persist(chart, data)
            self._push(chart, staged_path, dest_session, dest_path)
        finally:
            self._cleanup(chart, staged_path)

    def _persist(self, chart: HelmChart, data: bytes) -> str:
        work_dir = None
        try:
            if self.staging_dir:
                os.makedirs(self.staging_dir, exist_ok=True)
            work_dir = tempfile.mkdtemp(prefix=f"{chart.name}-", dir=self.staging_dir)
            path = os.path.join(work_dir, chart.chart_file_name())
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, STAGED_FILE_MODE)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            if work_dir:
                shutil.rmtree(work_dir, ignore_errors=True)
            raise PersistError(chart, str(e))

        logger.debug(f"Staged {chart} at {path} ({len(data)} bytes)")
        return path

    def _push(self, chart: HelmChart, staged_path: str, dest_session: RegistrySession, dest_path: str) -> None:
        destination_ref = build_destination_ref(dest_session, chart, dest_path)
        logger.debug(f"Pushing {staged_path} to {destination_ref}")
        try:
            self.pusher.push(staged_path, destination_ref, dest_session)
        except Exception as e:
            raise PushError(chart, str(e))

    def _cleanup(self, chart: HelmChart, staged_path: Optional[str]) -> None:
        """Remove the staged archive and its directory if they exist. Never raises."""
        if staged_path is None:
            return

        work_dir = os.path.dirname(staged_path)
        try:
            if os.path.exists(staged_path):
                os.remove(staged_path)
            if os.path.isdir(work_dir):
                os.rmdir(work_dir)
        except OSError as e:
            logger.warning(str(CleanupError(chart, str(e))))
