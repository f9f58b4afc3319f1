#!/usr/bin/env python3
"""
Configuration Manager for the ECR registry cleaner

This module handles loading, validating and exposing the YAML configuration
together with the environment variables that override it.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from ecr_cleaner.utils.error_utils import ConfigValidationError, ErrorCategory, create_config_error
from ecr_cleaner.utils.image_filter import FilterRule, ImageFilter, RepositoryExcluder

DEFAULT_CONFIG_FILE = "cleaner.yaml"


@dataclass
class RegistryConfig:
    """The registry whose images are cleaned"""
    profile_name: Optional[str]
    name: Optional[str] = None
    region: Optional[str] = None
    excludes: List[str] = field(default_factory=list)
    filters: List[FilterRule] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.profile_name or "default"


@dataclass
class ScanConfig:
    """An AWS account/region whose workloads are scanned for image references"""
    profile_name: Optional[str]
    name: Optional[str] = None
    region: Optional[str] = None
    kubernetes_context: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.profile_name or "default"


@dataclass
class SlackNotifierConfig:
    webhook_url: str
    username: Optional[str] = None
    channel: Optional[str] = None
    icon_url: Optional[str] = None


class ConfigManager:
    """Manages configuration for the ECR registry cleaner"""

    def __init__(self, config_file: str = None, validate: bool = True):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to CONFIG_FILE env var or cleaner.yaml)
            validate: If True, validate configuration on initialization
        """
        if config_file is None:
            config_file = os.environ.get("CONFIG_FILE", DEFAULT_CONFIG_FILE)
        self.config_file = config_file
        self.config = self._load_config()

        if validate:
            self.validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with defaults"""
        default_config = {
            "registry": {"name": None, "profile_name": None, "region": None, "excludes": [], "filters": []},
            "scans": [],
            "notifier": None,
            "concurrency": {
                "max_tasks": 16,  # Ceiling per fan-out group; 0 disables the ceiling
            },
        }

        if not os.path.exists(self.config_file):
            raise ConfigValidationError(
                f"Config file {self.config_file} not found",
                category=ErrorCategory.CONFIGURATION,
                suggestions=[
                    "Create one with the 'init' command",
                    "Pass an explicit path with --config or the CONFIG_FILE environment variable",
                ],
                details={"config_file": self.config_file},
            )

        try:
            with open(self.config_file, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationError(
                f"Error loading config file {self.config_file}",
                source=e,
                category=ErrorCategory.CONFIGURATION,
                suggestions=["Check the file is readable and is valid YAML"],
            ) from e

        if not isinstance(user_config, dict):
            raise create_config_error("<root>", type(user_config).__name__, "configuration must be a mapping")
        return self._merge_config(default_config, user_config)

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults"""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    # Registry configuration
    def get_registry_config(self) -> RegistryConfig:
        """Get registry configuration. AWS_PROFILE applies when no profile is configured."""
        registry = self.config.get("registry") or {}
        if not isinstance(registry, dict):
            raise create_config_error("registry", registry, "registry must be a mapping")

        excludes = registry.get("excludes") or []
        if not isinstance(excludes, list):
            raise create_config_error("registry.excludes", excludes, "must be a list of globs")

        filters = registry.get("filters") or []
        if not isinstance(filters, list):
            raise create_config_error("registry.filters", filters, "must be a list of filter rules")

        return RegistryConfig(
            profile_name=registry.get("profile_name") or os.environ.get("AWS_PROFILE"),
            name=registry.get("name"),
            region=registry.get("region"),
            excludes=list(excludes),
            filters=[FilterRule.from_dict(f, i) for i, f in enumerate(filters)],
        )

    # Scan configuration
    def get_scan_configs(self) -> List[ScanConfig]:
        """Get scan targets. Each one yields every scanner kind."""
        scans = self.config.get("scans") or []
        if not isinstance(scans, list):
            raise create_config_error("scans", scans, "scans must be a list")

        result = []
        for i, scan in enumerate(scans):
            if not isinstance(scan, dict):
                raise create_config_error(f"scans[{i}]", scan, "scan target must be a mapping")
            result.append(ScanConfig(
                profile_name=scan.get("profile_name"),
                name=scan.get("name"),
                region=scan.get("region"),
                kubernetes_context=scan.get("kubernetes_context"),
            ))
        return result

    # Notifier configuration
    def get_notifier_config(self) -> Optional[SlackNotifierConfig]:
        """Get Slack notifier configuration; SLACK_WEBHOOK_URL overrides the configured URL"""
        notifier = self.config.get("notifier")
        if not notifier:
            return None
        slack = notifier.get("slack") if isinstance(notifier, dict) else None
        if not isinstance(slack, dict):
            raise create_config_error("notifier.slack", slack, "notifier requires a 'slack' mapping")

        webhook_url = os.environ.get("SLACK_WEBHOOK_URL") or slack.get("webhook_url")
        return SlackNotifierConfig(
            webhook_url=webhook_url,
            username=slack.get("username"),
            channel=slack.get("channel"),
            icon_url=slack.get("icon_url"),
        )

    # Concurrency configuration
    def get_max_tasks(self) -> Optional[int]:
        """Get the per-group task ceiling, with type coercion. 0 means unbounded (None)."""
        value = (self.config.get("concurrency") or {}).get("max_tasks", 16)
        try:
            value = int(value)
        except (ValueError, TypeError):
            raise create_config_error("concurrency.max_tasks", value, "must be an integer")
        return value or None

    def validate_config(self) -> None:
        """Validate configuration values

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        warnings = []

        registry = self.get_registry_config()
        # Compiling the patterns is the validation for globs
        ImageFilter(registry.filters)
        RepositoryExcluder(registry.excludes)
        if not registry.filters:
            warnings.append("registry.filters is empty: every image not referenced by a workload is a target")

        scans = self.get_scan_configs()
        if not scans:
            warnings.append("No scan targets configured: no image will be considered in use")

        max_tasks = self.get_max_tasks()
        if max_tasks is not None and max_tasks < 0:
            raise create_config_error("concurrency.max_tasks", max_tasks, "must be a non-negative integer")
        if max_tasks is None:
            warnings.append("concurrency.max_tasks is 0: fan-out is unbounded")
        elif max_tasks > 100:
            warnings.append(f"concurrency.max_tasks is very high ({max_tasks}), API throttling is likely")

        notifier = self.get_notifier_config()
        if notifier is not None and not notifier.webhook_url:
            raise create_config_error("notifier.slack.webhook_url", None, "webhook_url is required")

        for warning in warnings:
            logging.warning(f"Configuration warning: {warning}")

    @staticmethod
    def example_config() -> Dict[str, Any]:
        """Example configuration written by the init command"""
        return {
            "registry": {
                "name": "my-registry",
                "profile_name": "profile1",
                "excludes": ["exclude/*"],
                "filters": [
                    {"pattern": "*", "days_after": 30, "ignore_tag_patterns": ["latest"]},
                ],
            },
            "scans": [
                {"name": "scan-target", "profile_name": "profile2"},
            ],
            "notifier": {
                "slack": {
                    "webhook_url": "https://hooks.slack.com/services/xxx/yyy/zzz",
                    "username": "ecr-cleaner-bot",
                    "channel": "random",
                },
            },
            "concurrency": {"max_tasks": 16},
        }

    @classmethod
    def dump_example_config(cls) -> str:
        return yaml.safe_dump(cls.example_config(), sort_keys=False)
