"""
Utility functions for migration report generation and saving.

This module provides functions to:
- Render the per-chart failure table shown at the end of a run
- Build the JSON migration report
- Save reports to disk
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from tabulate import tabulate

from utils.chart_models import MigrationOutcome
from utils.logging_utils import get_logger

logger = get_logger(__name__)


def format_failure_table(outcome: MigrationOutcome) -> str:
    """Render failed charts as a grid, in the order they were processed."""
    headers = ["Project", "Chart", "Version", "File", "Step", "Error"]
    rows = [
        [f.chart.project, f.chart.name, f.chart.version, f.chart.chart_file_name(), f.step, f.error]
        for f in outcome.failures
    ]
    return tabulate(rows, headers=headers, tablefmt="grid")


def build_migration_report(config, outcome: MigrationOutcome) -> Dict[str, Any]:
    """Assemble the JSON report for a finished run. Credentials are never included."""
    return {
        "summary": {
            "total": outcome.total,
            "succeeded": outcome.succeeded,
            "failed": outcome.failed,
        },
        "failures": [failure.to_dict() for failure in outcome.failures],
        "metadata": {
            "source_registry": config.source.url,
            "destination_registry": config.destination.url,
            "dest_path": config.dest_path,
            "projects": list(config.projects),
            "timestamp": datetime.now().isoformat(),
        },
    }


def save_json(path: str, data: Any) -> str:
    """
    Write JSON data to a file with indentation, creating parent directories.

    Args:
        path: Path to save the JSON file
        data: Data to save

    Returns:
        Path to the saved file
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w") as f:
        json.dump(data, f, indent=2, default=str)

    logger.info(f"Report saved to {out}")
    return str(out)
