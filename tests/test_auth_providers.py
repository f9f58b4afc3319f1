"""Unit tests for ecr_cleaner/utils/auth/providers.py"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, ProfileNotFound
from kubernetes.config.config_exception import ConfigException

from ecr_cleaner.utils.auth import create_aws_session, get_caller_identity, get_kubernetes_core_client
from ecr_cleaner.utils.error_utils import ErrorCategory, ErrorKind, InitializationError


class TestCreateAwsSession:
    """Tests for create_aws_session"""

    def test_passes_profile_and_region(self):
        with patch("ecr_cleaner.utils.auth.providers.boto3.session.Session") as session_cls:
            session_cls.return_value.region_name = "eu-west-1"

            session = create_aws_session("p1", "eu-west-1")

        session_cls.assert_called_once_with(profile_name="p1", region_name="eu-west-1")
        assert session is session_cls.return_value

    def test_unknown_profile(self):
        with patch("ecr_cleaner.utils.auth.providers.boto3.session.Session",
                   side_effect=ProfileNotFound(profile="nope")):
            with pytest.raises(InitializationError) as exc_info:
                create_aws_session("nope")

        assert exc_info.value.kind is ErrorKind.INITIALIZATION
        assert isinstance(exc_info.value.__cause__, ProfileNotFound)

    def test_missing_region(self):
        with patch("ecr_cleaner.utils.auth.providers.boto3.session.Session") as session_cls:
            session_cls.return_value.region_name = None

            with pytest.raises(InitializationError) as exc_info:
                create_aws_session("p1")

        assert exc_info.value.category is ErrorCategory.CONFIGURATION


class TestGetCallerIdentity:
    """Tests for get_caller_identity"""

    def test_returns_account_and_arn(self):
        session = MagicMock(region_name="us-east-1")
        session.client.return_value.get_caller_identity.return_value = {
            "Account": "123456789012", "Arn": "arn:aws:iam::123456789012:user/cleaner", "UserId": "x",
        }

        assert get_caller_identity(session) == {
            "account": "123456789012", "arn": "arn:aws:iam::123456789012:user/cleaner",
        }
        session.client.assert_called_once_with("sts")

    def test_expired_credentials(self):
        session = MagicMock(region_name="us-east-1")
        session.client.return_value.get_caller_identity.side_effect = ClientError(
            {"Error": {"Code": "ExpiredToken", "Message": "expired"}}, "GetCallerIdentity"
        )

        with pytest.raises(InitializationError) as exc_info:
            get_caller_identity(session, "p1")

        assert exc_info.value.category is ErrorCategory.AUTHENTICATION
        assert exc_info.value.details["profile"] == "p1"


class TestKubernetesClient:
    """Tests for get_kubernetes_core_client"""

    def test_uses_context(self):
        with patch("kubernetes.config.new_client_from_config") as new_client, \
                patch("kubernetes.client.CoreV1Api") as core_v1:
            client = get_kubernetes_core_client("eks-prod")

        new_client.assert_called_once_with(context="eks-prod")
        core_v1.assert_called_once_with(api_client=new_client.return_value)
        assert client is core_v1.return_value

    def test_unknown_context_does_not_fall_back(self):
        with patch("kubernetes.config.new_client_from_config", side_effect=ConfigException("no context")), \
                patch("kubernetes.config.load_incluster_config") as incluster:
            with pytest.raises(InitializationError):
                get_kubernetes_core_client("missing")

        incluster.assert_not_called()

    def test_falls_back_to_in_cluster(self):
        with patch("kubernetes.config.new_client_from_config", side_effect=ConfigException("no kubeconfig")), \
                patch("kubernetes.config.load_incluster_config") as incluster, \
                patch("kubernetes.client.CoreV1Api") as core_v1:
            client = get_kubernetes_core_client()

        incluster.assert_called_once()
        assert client is core_v1.return_value

    def test_nothing_available(self):
        with patch("kubernetes.config.new_client_from_config", side_effect=ConfigException("no kubeconfig")), \
                patch("kubernetes.config.load_incluster_config", side_effect=ConfigException("not in cluster")):
            with pytest.raises(InitializationError):
                get_kubernetes_core_client()
