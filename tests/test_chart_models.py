"""Unit tests for utils/chart_models.py"""

import sys
from pathlib import Path

import pytest

_python_dir = Path(__file__).parent.parent / "python"
if str(_python_dir.absolute()) not in sys.path:
    sys.path.insert(0, str(_python_dir.absolute()))


class TestHelmChart:
    """Tests for the HelmChart identity"""

    def test_chart_file_name(self):
        """Test the archive name is <name>-<version>.tgz"""
        from utils.chart_models import HelmChart

        chart = HelmChart(name="redis", project="db", version="1.0.0")
        assert chart.chart_file_name() == "redis-1.0.0.tgz"

    def test_chart_file_name_ignores_project(self):
        """Test the archive name only depends on name and version"""
        from utils.chart_models import HelmChart

        first = HelmChart(name="nginx", project="web", version="2.3.1")
        second = HelmChart(name="nginx", project="other", version="2.3.1")
        assert first.chart_file_name() == second.chart_file_name() == "nginx-2.3.1.tgz"

    def test_equal_charts_are_equal_and_hashable(self):
        """Test identities compare by value"""
        from utils.chart_models import HelmChart

        assert HelmChart("redis", "db", "1.0.0") == HelmChart("redis", "db", "1.0.0")
        assert len({HelmChart("redis", "db", "1.0.0"), HelmChart("redis", "db", "1.0.0")}) == 1

    def test_is_immutable(self):
        """Test fields cannot be reassigned"""
        from dataclasses import FrozenInstanceError

        from utils.chart_models import HelmChart

        chart = HelmChart(name="redis", project="db", version="1.0.0")
        with pytest.raises(FrozenInstanceError):
            chart.version = "2.0.0"

    @pytest.mark.parametrize("name,project,version", [("", "db", "1.0.0"), ("redis", "", "1.0.0"), ("redis", "db", "")])
    def test_rejects_empty_fields(self, name, project, version):
        """Test every field must be non-empty"""
        from utils.chart_models import HelmChart

        with pytest.raises(ValueError):
            HelmChart(name=name, project=project, version=version)

    @pytest.mark.parametrize(
        "name,version", [("../redis", "1.0.0"), ("charts/redis", "1.0.0"), ("redis", "1.0.0/../../x"), ("redis", "..\\x")]
    )
    def test_rejects_path_separators(self, name, version):
        """Test name and version cannot escape the staging directory"""
        from utils.chart_models import HelmChart

        with pytest.raises(ValueError):
            HelmChart(name=name, project="db", version=version)

    def test_str(self):
        from utils.chart_models import HelmChart

        assert str(HelmChart(name="redis", project="db", version="1.0.0")) == "db/redis:1.0.0"


class TestRegistryEndpoint:
    """Tests for RegistryEndpoint helpers"""

    def test_host_strips_scheme_and_trailing_slash(self):
        from utils.chart_models import RegistryEndpoint

        assert RegistryEndpoint(url="https://harbor.example.com/").host == "harbor.example.com"
        assert RegistryEndpoint(url="http://harbor:8080").host == "harbor:8080"
        assert RegistryEndpoint(url="harbor.example.com").host == "harbor.example.com"

    def test_base_url_defaults_to_https(self):
        from utils.chart_models import RegistryEndpoint

        assert RegistryEndpoint(url="harbor.example.com").base_url == "https://harbor.example.com"
        assert RegistryEndpoint(url="http://harbor:8080/").base_url == "http://harbor:8080"

    def test_repr_hides_password(self):
        """Test the password never appears in repr output"""
        from utils.chart_models import RegistryEndpoint

        endpoint = RegistryEndpoint(url="harbor", username="admin", password="s3cret")
        assert "s3cret" not in repr(endpoint)

    def test_session_auth(self):
        from utils.chart_models import RegistryEndpoint, RegistrySession

        endpoint = RegistryEndpoint(url="harbor", username="admin", password="s3cret")
        assert RegistrySession(endpoint=endpoint).auth == ("admin", "s3cret")
        assert RegistrySession(endpoint=endpoint, anonymous=True).auth is None


class TestMigrationOutcome:
    """Tests for MigrationOutcome bookkeeping"""

    def test_counts(self):
        from utils.chart_models import HelmChart, MigrationOutcome

        outcome = MigrationOutcome(total=3)
        outcome.record_success()
        outcome.record_failure(HelmChart("nginx", "web", "2.3.1"), "fetch", "received status 404")
        outcome.record_success()

        assert outcome.succeeded == 2
        assert outcome.failed == 1
        assert outcome.succeeded + outcome.failed == outcome.total
        assert not outcome.all_succeeded

    def test_failures_keep_order(self):
        from utils.chart_models import HelmChart, MigrationOutcome

        outcome = MigrationOutcome(total=2)
        outcome.record_failure(HelmChart("b", "p", "1"), "push", "denied")
        outcome.record_failure(HelmChart("a", "p", "1"), "fetch", "timeout")

        assert [f.chart.name for f in outcome.failures] == ["b", "a"]

    def test_finalize_freezes_outcome(self):
        """Test an outcome cannot change once reported"""
        from utils.chart_models import MigrationOutcome

        outcome = MigrationOutcome(total=1)
        outcome.record_success()
        outcome.finalize()

        assert outcome.finalized
        with pytest.raises(RuntimeError):
            outcome.record_success()

    def test_finalize_rejects_incomplete_outcome(self):
        from utils.chart_models import MigrationOutcome

        outcome = MigrationOutcome(total=2)
        outcome.record_success()
        with pytest.raises(RuntimeError):
            outcome.finalize()

    def test_empty_outcome(self):
        from utils.chart_models import MigrationOutcome

        outcome = MigrationOutcome(total=0).finalize()
        assert outcome.to_dict() == {"total": 0, "succeeded": 0, "failed": 0, "failures": []}
        assert outcome.all_succeeded

    def test_to_dict_includes_failure_details(self):
        from utils.chart_models import HelmChart, MigrationOutcome

        outcome = MigrationOutcome(total=1)
        outcome.record_failure(HelmChart("nginx", "web", "2.3.1"), "fetch", "received status 500")

        failure = outcome.to_dict()["failures"][0]
        assert failure == {
            "chart": "web/nginx:2.3.1",
            "file": "nginx-2.3.1.tgz",
            "step": "fetch",
            "error": "received status 500",
        }
