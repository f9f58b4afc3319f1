"""
Credential helpers for the services the cleaner talks to.

This module provides:
- AWS sessions bound to a named profile and region
- Kubernetes API clients bound to a kubeconfig context
"""

from ecr_cleaner.utils.auth.providers import create_aws_session, get_caller_identity, get_kubernetes_core_client

__all__ = [
    "create_aws_session",
    "get_caller_identity",
    "get_kubernetes_core_client",
]
