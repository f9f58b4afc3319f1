"""
Plan and apply a registry cleanup.

RegistryCleaner wires the registry, the scanners of every scan target and
the optional notifier together from the configuration.
"""

from typing import List, Optional

from ecr_cleaner.aggregator import aggregate
from ecr_cleaner.notifier import SlackNotifier
from ecr_cleaner.registry import EcrImageRegistry
from ecr_cleaner.scanners import ReferenceScanner, create_scanners
from ecr_cleaner.utils.auth import create_aws_session, get_caller_identity, get_kubernetes_core_client
from ecr_cleaner.utils.concurrency import fail_fast_join, run_blocking
from ecr_cleaner.utils.config_manager import ConfigManager
from ecr_cleaner.utils.image import DeletionPlan, build_deletion_plan, count_images
from ecr_cleaner.utils.image_filter import ImageFilter, RepositoryExcluder
from ecr_cleaner.utils.logging_utils import get_logger


class RegistryCleaner:
    """Computes which images can go and deletes them"""

    def __init__(self, registry: EcrImageRegistry, scanners: List[ReferenceScanner],
                 notifier: Optional[SlackNotifier] = None, limit: Optional[int] = None,
                 registry_name: str = "registry"):
        self.registry = registry
        self.scanners = scanners
        self.notifier = notifier
        self.limit = limit
        self.registry_name = registry_name
        self.logger = get_logger(self.__class__.__name__)

    @classmethod
    async def from_config(cls, config: ConfigManager, verify_credentials: bool = True) -> "RegistryCleaner":
        """Build a cleaner from configuration.

        Raises:
            InitializationError: On invalid patterns, unknown profiles or rejected credentials
        """
        limit = config.get_max_tasks()
        registry_config = config.get_registry_config()

        registry_session = create_aws_session(registry_config.profile_name, registry_config.region)
        registry = EcrImageRegistry(
            registry_session,
            image_filter=ImageFilter(registry_config.filters),
            excluder=RepositoryExcluder(registry_config.excludes),
            limit=limit,
            profile_name=registry_config.profile_name,
        )

        sessions = [(registry_session, registry_config.profile_name)]
        scanners: List[ReferenceScanner] = []
        for scan in config.get_scan_configs():
            session = create_aws_session(scan.profile_name, scan.region)
            sessions.append((session, scan.profile_name))
            core_v1 = get_kubernetes_core_client(scan.kubernetes_context) if scan.kubernetes_context else None
            scanners.extend(create_scanners(
                session,
                scan.display_name,
                limit,
                profile_name=scan.profile_name,
                kubernetes_core_v1=core_v1,
                kubernetes_context=scan.kubernetes_context,
            ))

        if verify_credentials:
            await fail_fast_join(
                (run_blocking(get_caller_identity, s, p) for s, p in sessions), limit, name="credential checks"
            )

        notifier_config = config.get_notifier_config()
        notifier = SlackNotifier(notifier_config) if notifier_config else None

        return cls(registry, scanners, notifier=notifier, limit=limit, registry_name=registry_config.display_name)

    async def plan(self) -> DeletionPlan:
        """Compute the deletion plan without deleting anything.

        Raises:
            AggregationError: If enumeration or any scanner fails
        """
        self.logger.info(f"Planning cleanup of {self.registry_name} with {len(self.scanners)} scanner(s)")
        targets = await aggregate(self.registry, self.scanners, self.limit)
        return build_deletion_plan(targets)

    async def apply(self, plan: DeletionPlan) -> None:
        """Delete every image of a plan.

        Raises:
            DeletionError: On the first failed batch; earlier batches stay deleted
        """
        if not plan:
            self.logger.info("Nothing to delete")
            return
        self.logger.info(f"Deleting {count_images(plan)} image(s) from {len(plan)} repositories")
        await self.registry.delete_images(plan)

    async def notify(self, title: str, plan: DeletionPlan) -> None:
        """Send a summary if a notifier is configured.

        Raises:
            NotificationError: If the notifier fails
        """
        if self.notifier is None:
            return
        await self.notifier.notify(title, plan)
