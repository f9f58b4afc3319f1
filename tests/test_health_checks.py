"""Unit tests for ecr_cleaner/utils/health_checks.py"""

from unittest.mock import MagicMock, patch

from ecr_cleaner.utils.config_manager import RegistryConfig, ScanConfig
from ecr_cleaner.utils.error_utils import InitializationError
from ecr_cleaner.utils.health_checks import HealthChecker, HealthCheckResult


def make_config(scans=()):
    config = MagicMock()
    config.get_registry_config.return_value = RegistryConfig(profile_name="p1", name="my-registry")
    config.get_scan_configs.return_value = list(scans)
    return config


class TestHealthCheckResult:
    """Tests for HealthCheckResult dataclass"""

    def test_health_check_result_without_details(self):
        result = HealthCheckResult(name="test_check", status=False, message="Test failed")

        assert result.details is None


class TestAwsProfileCheck:
    """Tests for HealthChecker.check_aws_profile"""

    def test_success(self):
        session = MagicMock(region_name="us-east-1")
        identity = {"account": "123456789012", "arn": "arn:aws:iam::123456789012:user/cleaner"}

        with patch("ecr_cleaner.utils.health_checks.create_aws_session", return_value=session), \
                patch("ecr_cleaner.utils.health_checks.get_caller_identity", return_value=identity):
            result = HealthChecker(make_config()).check_aws_profile("registry", "p1", None)

        assert result.status is True
        assert "user/cleaner" in result.message
        assert result.details == {"account": "123456789012", "region": "us-east-1"}

    def test_failure(self):
        error = InitializationError("AWS profile 'p1' not found", suggestions=["Run aws configure"])

        with patch("ecr_cleaner.utils.health_checks.create_aws_session", side_effect=error):
            result = HealthChecker(make_config()).check_aws_profile("registry", "p1", None)

        assert result.status is False
        assert "not found" in result.message
        assert result.details["suggestions"] == ["Run aws configure"]


class TestKubernetesContextCheck:
    """Tests for HealthChecker.check_kubernetes_context"""

    def test_success(self):
        core_v1 = MagicMock()
        with patch("ecr_cleaner.utils.health_checks.get_kubernetes_core_client", return_value=core_v1):
            result = HealthChecker(make_config()).check_kubernetes_context("kubernetes eks", "eks")

        assert result.status is True
        core_v1.list_pod_for_all_namespaces.assert_called_once_with(limit=1)

    def test_api_failure(self):
        core_v1 = MagicMock()
        core_v1.list_pod_for_all_namespaces.side_effect = RuntimeError("Forbidden")
        with patch("ecr_cleaner.utils.health_checks.get_kubernetes_core_client", return_value=core_v1):
            result = HealthChecker(make_config()).check_kubernetes_context("kubernetes eks", "eks")

        assert result.status is False
        assert "Forbidden" in result.message


class TestRunAllChecks:
    """Tests for HealthChecker.run_all_checks and print_health_report"""

    def test_checks_registry_scans_and_contexts(self):
        scans = [ScanConfig(profile_name="p2", name="prod", kubernetes_context="eks"), ScanConfig(profile_name="p3")]
        checker = HealthChecker(make_config(scans))
        ok = HealthCheckResult(name="x", status=True, message="ok")

        with patch.object(checker, "check_aws_profile", return_value=ok) as aws, \
                patch.object(checker, "check_kubernetes_context", return_value=ok) as k8s:
            results = checker.run_all_checks()

        assert len(results) == 4
        assert [c.args[0] for c in aws.call_args_list] == ["registry my-registry", "scan prod", "scan p3"]
        k8s.assert_called_once_with("kubernetes eks", "eks")

    def test_print_report_all_healthy(self, capsys):
        checker = HealthChecker(make_config())

        assert checker.print_health_report([HealthCheckResult("a", True, "fine")]) is True
        assert "All 1 check(s) passed" in capsys.readouterr().out

    def test_print_report_with_failure(self, capsys):
        checker = HealthChecker(make_config())
        results = [HealthCheckResult("a", True, "fine"), HealthCheckResult("b", False, "broken", {"profile": "p"})]

        assert checker.print_health_report(results) is False
        out = capsys.readouterr().out
        assert "1 of 2 check(s) failed" in out
        assert "✗ b" in out
        assert "profile: p" in out
