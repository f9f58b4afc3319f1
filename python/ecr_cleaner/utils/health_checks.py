"""
Health check utilities for verifying credentials before a run.

This module provides health checks for:
- The registry's AWS profile
- Every scan target's AWS profile
- Kubernetes contexts of scan targets (if configured)
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from tabulate import tabulate

from ecr_cleaner.utils.auth import create_aws_session, get_caller_identity, get_kubernetes_core_client
from ecr_cleaner.utils.config_manager import ConfigManager
from ecr_cleaner.utils.error_utils import CleanerError
from ecr_cleaner.utils.logging_utils import get_logger


@dataclass
class HealthCheckResult:
    """Result of a health check"""

    name: str
    status: bool  # True if healthy, False if unhealthy
    message: str
    details: Optional[Dict] = None


class HealthChecker:
    """Performs health checks on the configured accounts"""

    def __init__(self, config: ConfigManager):
        self.config = config
        self.logger = get_logger(self.__class__.__name__)

    def check_aws_profile(self, name: str, profile_name: Optional[str], region: Optional[str]) -> HealthCheckResult:
        """Check that a profile's credentials are accepted by STS

        Returns:
            HealthCheckResult with the resolved account and region
        """
        try:
            session = create_aws_session(profile_name, region)
            identity = get_caller_identity(session, profile_name)
            return HealthCheckResult(
                name=name,
                status=True,
                message=f"Authenticated as {identity['arn']}",
                details={"account": identity["account"], "region": session.region_name},
            )
        except CleanerError as e:
            return HealthCheckResult(
                name=name,
                status=False,
                message=e.message,
                details={"profile": profile_name or "default", "suggestions": e.suggestions},
            )

    def check_kubernetes_context(self, name: str, context: str) -> HealthCheckResult:
        """Check that a kubeconfig context can list pods"""
        try:
            core_v1 = get_kubernetes_core_client(context)
            core_v1.list_pod_for_all_namespaces(limit=1)
            return HealthCheckResult(name=name, status=True, message=f"Listed pods using context {context}")
        except CleanerError as e:
            return HealthCheckResult(name=name, status=False, message=e.message, details={"context": context})
        except Exception as e:
            return HealthCheckResult(
                name=name,
                status=False,
                message=f"Kubernetes API call failed: {e}",
                details={"context": context},
            )

    def run_all_checks(self) -> List[HealthCheckResult]:
        """Run all health checks

        Returns:
            List of HealthCheckResult objects
        """
        registry = self.config.get_registry_config()
        results = [self.check_aws_profile(f"registry {registry.display_name}", registry.profile_name, registry.region)]

        for scan in self.config.get_scan_configs():
            results.append(self.check_aws_profile(f"scan {scan.display_name}", scan.profile_name, scan.region))
            if scan.kubernetes_context:
                results.append(
                    self.check_kubernetes_context(f"kubernetes {scan.kubernetes_context}", scan.kubernetes_context)
                )

        return results

    def print_health_report(self, results: List[HealthCheckResult]) -> bool:
        """Print one row per check, then the details of the failed ones.

        Returns:
            True if every check passed
        """
        rows = [["✓" if r.status else "✗", r.name, r.message] for r in results]
        print(tabulate(rows, headers=["", "Check", "Result"], tablefmt="simple"))

        failed = [r for r in results if not r.status]
        for result in failed:
            print(f"\n✗ {result.name}")
            for key, value in (result.details or {}).items():
                print(f"   {key}: {value}")

        if failed:
            print(f"\n{len(failed)} of {len(results)} check(s) failed")
        else:
            print(f"\nAll {len(results)} check(s) passed")
        return not failed
