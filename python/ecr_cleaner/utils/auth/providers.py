"""
Authentication provider implementations.

AWS access goes through boto3 sessions built from named profiles. Kubernetes
access loads a kubeconfig context, falling back to in-cluster configuration.
"""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, ProfileNotFound

from ecr_cleaner.utils.error_utils import ErrorCategory, InitializationError, create_aws_error


def create_aws_session(profile_name: Optional[str] = None, region: Optional[str] = None) -> boto3.session.Session:
    """Create a boto3 session for a named profile.

    Args:
        profile_name: AWS profile from the shared config/credentials files. None uses the default chain.
        region: Region override. None uses the profile's configured region.

    Raises:
        InitializationError: If the profile does not exist or no region can be resolved
    """
    try:
        session = boto3.session.Session(profile_name=profile_name, region_name=region)
    except ProfileNotFound as e:
        raise InitializationError(
            f"AWS profile '{profile_name}' not found",
            source=e,
            category=ErrorCategory.AUTHENTICATION,
            suggestions=[
                "Run 'aws configure list-profiles' to see the available profiles",
                f"Create the profile with 'aws configure --profile {profile_name}'",
            ],
            details={"profile": profile_name},
        ) from e

    if not session.region_name:
        raise InitializationError(
            f"No AWS region resolved for profile '{profile_name or 'default'}'",
            category=ErrorCategory.CONFIGURATION,
            suggestions=[
                "Set 'region' for this entry in the configuration file",
                "Or set AWS_DEFAULT_REGION / the profile's region in ~/.aws/config",
            ],
            details={"profile": profile_name},
        )

    logging.debug(f"Created AWS session for profile {profile_name or 'default'} in {session.region_name}")
    return session


def get_caller_identity(session: boto3.session.Session, profile_name: Optional[str] = None) -> Dict[str, Any]:
    """Return the STS caller identity for a session.

    Raises:
        InitializationError: If the credentials are missing, expired or rejected
    """
    try:
        identity = session.client("sts").get_caller_identity()
    except (ClientError, BotoCoreError) as e:
        raise create_aws_error(
            InitializationError, "sts:GetCallerIdentity", e, profile_name=profile_name, region=session.region_name
        ) from e
    return {"account": identity.get("Account"), "arn": identity.get("Arn")}


def get_kubernetes_core_client(context: Optional[str] = None):
    """Get a Kubernetes CoreV1Api client for a kubeconfig context.

    Tries the kubeconfig context first; when no context is given and no
    kubeconfig is present, falls back to in-cluster configuration.

    Raises:
        InitializationError: If neither configuration can be loaded
    """
    from kubernetes import client as k8s_client
    from kubernetes import config as k8s_config
    from kubernetes.config.config_exception import ConfigException

    try:
        api_client = k8s_config.new_client_from_config(context=context)
        logging.info(f"Kubernetes client initialized from kubeconfig (context: {context or 'current'})")
        return k8s_client.CoreV1Api(api_client=api_client)
    except (ConfigException, OSError) as e:
        if context:
            raise InitializationError(
                f"Could not load kubeconfig context '{context}'",
                source=e,
                category=ErrorCategory.CONFIGURATION,
                suggestions=["Run 'kubectl config get-contexts' to list the available contexts"],
                details={"context": context},
            ) from e
        kubeconfig_error = e

    try:
        k8s_config.load_incluster_config()
        logging.info("Kubernetes client initialized with in-cluster config")
        return k8s_client.CoreV1Api()
    except ConfigException as e:
        raise InitializationError(
            "Failed to initialize Kubernetes client",
            source=e,
            category=ErrorCategory.CONFIGURATION,
            suggestions=["Verify Kubernetes cluster access (kubectl cluster-info)"],
            details={"kubeconfig_error": str(kubeconfig_error)},
        ) from e
