"""Unit tests for utils/error_utils.py"""

import sys
from pathlib import Path

_python_dir = Path(__file__).parent.parent / "python"
if str(_python_dir.absolute()) not in sys.path:
    sys.path.insert(0, str(_python_dir.absolute()))


def _chart():
    from utils.chart_models import HelmChart

    return HelmChart(name="nginx", project="web", version="2.3.1")


class TestChartTransferErrors:
    def test_fetch_error_with_status(self):
        from utils.error_utils import ChartTransferError, FetchError

        error = FetchError(_chart(), status_code=404)

        assert isinstance(error, ChartTransferError)
        assert error.step == "fetch"
        assert error.cause == "received status 404"
        assert str(error) == "fetch failed for web/nginx:2.3.1 (nginx-2.3.1.tgz): received status 404"

    def test_fetch_error_with_cause(self):
        from utils.error_utils import FetchError

        error = FetchError(_chart(), cause="Read timed out")
        assert error.status_code is None
        assert error.cause == "Read timed out"

    def test_steps(self):
        from utils.error_utils import CleanupError, PersistError, PushError

        assert PersistError(_chart(), "disk full").step == "persist"
        assert PushError(_chart(), "denied").step == "push"
        assert CleanupError(_chart(), "busy").step == "cleanup"


class TestActionableErrors:
    def test_auth_error_message(self):
        from utils.error_utils import AuthError, ErrorCategory, create_registry_auth_error

        error = create_registry_auth_error("new-harbor", RuntimeError("x"), stderr="unauthorized\n")

        assert isinstance(error, AuthError)
        assert error.endpoint == "new-harbor"
        assert error.cause == "unauthorized"
        assert error.category == ErrorCategory.AUTHENTICATION
        assert "Failed to authenticate with registry at new-harbor" in str(error)
        assert "Suggested fixes" in str(error)

    def test_auth_error_suggests_installing_helm(self):
        from utils.error_utils import create_registry_auth_error

        error = create_registry_auth_error("new-harbor", FileNotFoundError("helm"))
        assert "Install helm" in error.suggestions[0]

    def test_discovery_error(self):
        from utils.error_utils import DiscoveryError, create_discovery_error

        error = create_discovery_error("https://old-harbor", "db", RuntimeError("403 response"))

        assert isinstance(error, DiscoveryError)
        assert error.project == "db"
        assert error.suggestions[0] == "Check --source-username / --source-password"
        assert "project 'db'" in error.message

    def test_config_error_lists_every_problem(self):
        from utils.error_utils import ConfigValidationError, create_config_error

        error = create_config_error(["first problem", "second problem"])

        assert isinstance(error, ConfigValidationError)
        assert "first problem" in str(error)
        assert "second problem" in str(error)

    def test_config_error_is_actionable(self):
        from utils.error_utils import ActionableError, ErrorCategory, create_config_error

        error = create_config_error(["Source registry URL is required"])

        assert isinstance(error, ActionableError)
        assert error.category == ErrorCategory.CONFIGURATION
        assert "Suggested fixes" in str(error)

    def test_discovery_error_categories(self):
        from utils.error_utils import ErrorCategory, create_discovery_error

        assert create_discovery_error("h", "db", RuntimeError("403 response")).category == ErrorCategory.PERMISSION
        assert create_discovery_error("h", "db", RuntimeError("Read timed out")).category == ErrorCategory.TIMEOUT
        assert create_discovery_error("h", "db", RuntimeError("refused")).category == ErrorCategory.CONNECTION

    def test_auth_timeout_category(self):
        from utils.error_utils import ErrorCategory, create_registry_auth_error

        error = create_registry_auth_error("new-harbor", RuntimeError("helm timed out after 300s"))
        assert error.category == ErrorCategory.TIMEOUT
