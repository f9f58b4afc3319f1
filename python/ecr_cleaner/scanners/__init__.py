"""
Reference scanners: each reports the ECR images one kind of workload uses.

Every scan target gets one instance of each AWS scanner kind, plus a
Kubernetes pod scanner when the target names a kubeconfig context.
"""

from typing import Any, List, Optional

from ecr_cleaner.scanners.base import AwsReferenceScanner, ReferenceScanner
from ecr_cleaner.scanners.ecs_service import EcsServiceScanner
from ecr_cleaner.scanners.kubernetes_pod import KubernetesPodScanner
from ecr_cleaner.scanners.lambda_function import LambdaFunctionScanner
from ecr_cleaner.scanners.task_definition import TaskDefinitionScanner

AWS_SCANNER_KINDS = (EcsServiceScanner, LambdaFunctionScanner, TaskDefinitionScanner)


def create_scanners(session: Any, target_name: str, limit: Optional[int] = None,
                    profile_name: Optional[str] = None, kubernetes_core_v1: Any = None,
                    kubernetes_context: Optional[str] = None) -> List[ReferenceScanner]:
    """Build every scanner kind for one scan target."""
    scanners: List[ReferenceScanner] = [
        kind(session, target_name, limit, profile_name=profile_name) for kind in AWS_SCANNER_KINDS
    ]
    if kubernetes_core_v1 is not None:
        scanners.append(KubernetesPodScanner(kubernetes_core_v1, target_name, limit, context=kubernetes_context))
    return scanners


__all__ = [
    "AWS_SCANNER_KINDS",
    "AwsReferenceScanner",
    "EcsServiceScanner",
    "KubernetesPodScanner",
    "LambdaFunctionScanner",
    "ReferenceScanner",
    "TaskDefinitionScanner",
    "create_scanners",
]
