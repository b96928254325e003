#!/usr/bin/env python3
"""
Migrate Helm charts from a Harbor ChartMuseum repository to an OCI registry.

Every chart version found in the selected source projects is downloaded from
ChartMuseum and pushed with `helm push` to oci://<destination>/<project><destpath>.
A chart that fails to migrate is reported and the run moves on to the next one.

Workflow:
1. Log in to the source and destination registries (helm registry login)
2. Discover chart versions in the requested projects (all projects if none given)
3. For each chart: fetch the archive, stage it locally, push it, remove the staged copy
4. Report total / succeeded / failed and one line per failed chart

Usage examples:
  # Migrate two projects
  python migrate_charts.py --source-url https://old-harbor.example.com --source-username admin \\
    --source-password secret --destination-url new-harbor.example.com \\
    --destination-username admin --destination-password secret --project db --project web

  # Re-host every chart under <project>/charts
  python migrate_charts.py --source-url https://old-harbor.example.com \\
    --destination-url new-harbor.example.com --destpath /charts

  # Read credentials from config.yaml / environment and save a JSON report
  python migrate_charts.py --config config.yaml --output reports/chart-migration.json

Exit status: 0 when every chart migrated, 2 when some charts failed,
1 when the run aborted before any chart was attempted, 130 when interrupted.
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import List, Optional

import tqdm

# Add parent directory to path for imports
_parent_dir = Path(__file__).parent.parent.absolute()
if str(_parent_dir) not in sys.path:
    sys.path.insert(0, str(_parent_dir))

from utils.chart_models import HelmChart, MigrationOutcome, RegistrySession
from utils.chart_transfer import ChartTransfer
from utils.chartmuseum_client import ChartMuseumClient
from utils.config_manager import ConfigManager, MigrationConfig, build_migration_config
from utils.error_utils import AuthError, ChartTransferError, ConfigValidationError, DiscoveryError
from utils.helm_client import HelmClient
from utils.logging_utils import get_logger, log_exception, setup_logging
from utils.registry_base import Authenticator, ChartDiscoverer
from utils.report_utils import build_migration_report, format_failure_table, save_json

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CHARTS_FAILED = 2
EXIT_INTERRUPTED = 130


class RunState(Enum):
    INIT = "init"
    AUTHENTICATING = "authenticating"
    DISCOVERING = "discovering"
    TRANSFERRING = "transferring"
    REPORTED = "reported"


class ChartMigrator:
    """Drives a full migration run: authenticate, discover, transfer, report."""

    def __init__(
        self,
        config: MigrationConfig,
        authenticator: Authenticator,
        discoverer: ChartDiscoverer,
        chart_transfer: ChartTransfer,
    ):
        self.config = config
        self.authenticator = authenticator
        self.discoverer = discoverer
        self.chart_transfer = chart_transfer
        self.state = RunState.INIT
        self.logger = get_logger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config: MigrationConfig) -> "ChartMigrator":
        """Wire the helm and ChartMuseum clients from configuration"""
        helm_client = HelmClient(helm_binary=config.helm_binary, timeout=config.helm_timeout)
        chartmuseum = ChartMuseumClient(fetch_timeout=config.fetch_timeout, page_size=config.page_size)
        return cls(
            config=config,
            authenticator=helm_client,
            discoverer=chartmuseum,
            chart_transfer=ChartTransfer(chartmuseum, helm_client, staging_dir=config.staging_dir),
        )

    def authenticate(self):
        """Log in to both registries. Any AuthError aborts the run."""
        self.state = RunState.AUTHENTICATING
        try:
            source_session = self.authenticator.authenticate(self.config.source)
        except AuthError:
            self.logger.error("Failed to login to source registry")
            raise
        try:
            dest_session = self.authenticator.authenticate(self.config.destination)
        except AuthError:
            self.logger.error("Failed to login to destination registry")
            raise
        if dest_session.anonymous:
            self.logger.warning("Destination registry has no credentials; pushes will likely be rejected")
        return source_session, dest_session

    def discover(self, source_session: RegistrySession) -> List[HelmChart]:
        """List the charts to migrate. Any DiscoveryError aborts the run."""
        self.state = RunState.DISCOVERING
        try:
            charts = self.discoverer.discover(source_session, self.config.projects)
        except DiscoveryError:
            self.logger.error("Failed to retrieve Helm charts from source")
            raise
        self.logger.info(f"{len(charts)} Helm charts to migrate")
        return charts

    def _transfer_one(
        self, chart: HelmChart, source_session: RegistrySession, dest_session: RegistrySession
    ) -> Optional[Exception]:
        """Run one transfer and hand back its error instead of raising it"""
        try:
            self.chart_transfer.transfer(chart, source_session, dest_session, self.config.dest_path)
        except ChartTransferError as e:
            return e
        except Exception as e:
            log_exception(self.logger, f"Unexpected error while migrating {chart}", exc_info=e)
            return e
        return None

    def _record(self, outcome: MigrationOutcome, chart: HelmChart, error: Optional[Exception]) -> None:
        if error is None:
            outcome.record_success()
            self.logger.debug(f"Migrated {chart}")
            return
        step = getattr(error, "step", "transfer")
        cause = getattr(error, "cause", str(error))
        outcome.record_failure(chart, step, cause)
        self.logger.error(f"Failed to migrate Helm chart: {error}")

    def migrate_charts(
        self, charts: List[HelmChart], source_session: RegistrySession, dest_session: RegistrySession
    ) -> MigrationOutcome:
        """Transfer every chart, recording outcomes in discovery order.

        A failed chart is recorded and never stops the remaining charts.
        """
        self.state = RunState.TRANSFERRING
        outcome = MigrationOutcome(total=len(charts))
        if not charts:
            return outcome

        progress = tqdm.tqdm(
            total=len(charts), desc="Migrating charts", unit="chart", disable=not self.config.show_progress
        )
        with progress:
            if self.config.max_workers <= 1:
                for chart in charts:
                    error = self._transfer_one(chart, source_session, dest_session)
                    self._record(outcome, chart, error)
                    progress.update(1)
            else:
                with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                    futures = [
                        executor.submit(self._transfer_one, chart, source_session, dest_session) for chart in charts
                    ]
                    for chart, future in zip(charts, futures):
                        self._record(outcome, chart, future.result())
                        progress.update(1)

        return outcome

    def report(self, outcome: MigrationOutcome) -> MigrationOutcome:
        """Finalize the outcome and log the summary plus one line per failed chart"""
        outcome.finalize()
        self.state = RunState.REPORTED

        self.logger.info("=" * 60)
        self.logger.info("   CHART MIGRATION SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(
            f"{outcome.succeeded}/{outcome.total} Helm charts successfully migrated ({outcome.failed} failed)"
        )
        for failure in outcome.failures:
            self.logger.error(
                f"  {failure.chart} ({failure.chart.chart_file_name()}) failed at {failure.step}: {failure.error}"
            )
        if outcome.failures:
            print(format_failure_table(outcome))

        if self.config.output_file:
            try:
                save_json(self.config.output_file, build_migration_report(self.config, outcome))
            except OSError as e:
                self.logger.error(f"Could not write report to {self.config.output_file}: {e}")

        return outcome

    def run(self) -> MigrationOutcome:
        """Execute the whole migration.

        Raises:
            AuthError: if either registry rejects the login (nothing is discovered)
            DiscoveryError: if the source charts cannot be listed (nothing is transferred)
        """
        source_session, dest_session = self.authenticate()
        charts = self.discover(source_session)
        outcome = self.migrate_charts(charts, source_session, dest_session)
        return self.report(outcome)


def parse_arguments(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Migrate Helm charts from a Harbor ChartMuseum repository to an OCI registry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Migrate the db and web projects
  python migrate_charts.py --source-url https://old-harbor --destination-url new-harbor \\
    --source-username admin --source-password secret \\
    --destination-username admin --destination-password secret --project db --project web

  # Migrate every project, pushing under <project>/charts
  python migrate_charts.py --config config.yaml --destpath /charts
        """,
    )

    parser.add_argument("--source-url", help="Source Harbor registry URL (e.g. https://old-harbor.example.com)")
    parser.add_argument("--source-username", help="Source Harbor registry username")
    parser.add_argument("--source-password", help="Source Harbor registry password")
    parser.add_argument("--destination-url", help="Destination OCI registry URL (e.g. new-harbor.example.com)")
    parser.add_argument("--destination-username", help="Destination registry username")
    parser.add_argument("--destination-password", help="Destination registry password")
    parser.add_argument(
        "--destpath",
        help="Suffix appended to the project in the destination path (e.g. /charts gives oci://host/<project>/charts)",
    )
    parser.add_argument(
        "--project",
        action="append",
        help="Name of a project to migrate; repeat for several (default: every project on the source)",
    )

    parser.add_argument("--config", help="YAML config file (default: CONFIG_FILE env var or config.yaml)")
    parser.add_argument(
        "--source-insecure", action="store_true", help="Skip TLS certificate verification for the source registry"
    )
    parser.add_argument(
        "--destination-insecure",
        action="store_true",
        help="Skip TLS certificate verification for the destination registry",
    )
    parser.add_argument("--fetch-timeout", type=float, help="Timeout in seconds for each chart download (default: 5)")
    parser.add_argument("--max-workers", type=int, help="Number of charts migrated in parallel (default: 1)")
    parser.add_argument("--staging-dir", help="Directory for downloaded charts (default: system temp directory)")
    parser.add_argument("--helm-binary", help="Path to the helm executable (default: helm)")
    parser.add_argument("--output", help="Write a JSON migration report to this file")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    args = parse_arguments(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = build_migration_config(args, ConfigManager(args.config))
    except ConfigValidationError as e:
        logger.error(str(e))
        sys.exit(EXIT_FATAL)

    logger.info(f"Source registry:      {config.source.url}")
    logger.info(f"Destination registry: {config.destination.host}")
    logger.info(f"Projects:             {', '.join(config.projects) or '(all)'}")
    if config.dest_path:
        logger.info(f"Destination path:     <project>{config.dest_path}")

    try:
        outcome = ChartMigrator.from_config(config).run()
    except (AuthError, DiscoveryError) as e:
        logger.error(str(e))
        sys.exit(EXIT_FATAL)
    except KeyboardInterrupt:
        logger.warning("\nMigration interrupted by user; re-run the migration to finish")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        log_exception(logger, "Error in chart migration", exc_info=e)
        sys.exit(EXIT_FATAL)

    sys.exit(EXIT_OK if outcome.all_succeeded else EXIT_CHARTS_FAILED)


if __name__ == "__main__":
    main()
