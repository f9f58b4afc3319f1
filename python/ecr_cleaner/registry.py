#!/usr/bin/env python3
"""
ECR registry access: enumerate deletion candidates and delete them in batches.

Enumeration lists every repository, skips the excluded ones before any
per-image call, and then lists the tagged images of each remaining
repository concurrently. Each (image, tag) pair is checked against the
filter rules; only eligible images are returned. Untagged images are never
listed.

Deletion submits one batch_delete_image call per chunk of at most 100 tags.
The first failing chunk stops the run; chunks already submitted stay
deleted.
"""

from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Set

from botocore.exceptions import BotoCoreError, ClientError

from ecr_cleaner.utils.concurrency import (
    chunked,
    collect_pages,
    error_boundary,
    fail_fast_join,
    merge_sets,
    run_blocking,
)
from ecr_cleaner.utils.error_utils import CleanerError, DeletionError, EnumerationError, create_aws_error
from ecr_cleaner.utils.image import DeletionPlan, ImageRecord, ImageRef, count_images
from ecr_cleaner.utils.image_filter import ImageFilter, RepositoryExcluder
from ecr_cleaner.utils.logging_utils import get_logger

# Platform ceiling for image ids per batch_delete_image call
DELETE_BATCH_SIZE = 100

# Per-identifier failure code meaning the tag is already gone
IMAGE_NOT_FOUND = "ImageNotFound"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EcrImageRegistry:
    """The registry whose unused images are cleaned"""

    def __init__(self, session: Any, image_filter: Optional[ImageFilter] = None,
                 excluder: Optional[RepositoryExcluder] = None, limit: Optional[int] = None,
                 profile_name: Optional[str] = None, client: Any = None,
                 clock: Callable[[], datetime] = _utcnow):
        """Initialize the registry

        Args:
            session: boto3 session used to create the ECR client (ignored when client is given)
            image_filter: Filter rules; None means every image is eligible
            excluder: Repository exclusion patterns; None excludes nothing
            limit: Maximum number of repositories listed concurrently (None is unbounded)
            profile_name: AWS profile, for error messages
            client: Pre-built ECR client
            clock: Returns the current time; read once per enumeration
        """
        self.client = client if client is not None else session.client("ecr")
        self.image_filter = image_filter or ImageFilter()
        self.excluder = excluder or RepositoryExcluder()
        self.limit = limit
        self.profile_name = profile_name
        self.clock = clock
        self.logger = get_logger(self.__class__.__name__)

    @property
    def region(self) -> str:
        return self.client.meta.region_name

    def _wrap(self, error_cls: type, operation: str) -> Callable[[Exception], CleanerError]:
        def wrap(error: Exception) -> CleanerError:
            if isinstance(error, (ClientError, BotoCoreError)):
                return create_aws_error(
                    error_cls, f"ecr:{operation}", error, profile_name=self.profile_name, region=self.region
                )
            return error_cls(f"ecr:{operation} failed: {error}", source=error)
        return wrap

    async def enumerate_eligible(self, now: Optional[datetime] = None) -> Set[ImageRef]:
        """List registry images that pass the exclusion list and every filter rule.

        Raises:
            EnumerationError: If any listing call fails
        """
        now = now or self.clock()
        with error_boundary(self._wrap(EnumerationError, "DescribeRepositories"), passthrough=(CleanerError,)):
            repositories = await collect_pages(self.client, "describe_repositories", "repositories")

        candidates = []
        for repo in repositories:
            name = repo.get("repositoryName")
            registry_id = repo.get("registryId")
            if not name or not registry_id:
                continue
            if self.excluder.is_excluded(name):
                self.logger.debug(f"Skipping excluded repository {name}")
                continue
            candidates.append((registry_id, name))

        self.logger.info(
            f"Found {len(repositories)} repositories in {self.region}, "
            f"{len(repositories) - len(candidates)} excluded"
        )

        per_repo = await fail_fast_join(
            (self._eligible_in_repository(registry_id, name, now) for registry_id, name in candidates),
            self.limit,
            name="repositories",
        )
        eligible = merge_sets(per_repo)
        self.logger.info(f"{len(eligible)} image tag(s) pass the filter rules")
        return eligible

    async def _eligible_in_repository(self, registry_id: str, repository_name: str,
                                      now: datetime) -> Set[ImageRef]:
        with error_boundary(self._wrap(EnumerationError, "DescribeImages"), passthrough=(CleanerError,)):
            details = await collect_pages(
                self.client,
                "describe_images",
                "imageDetails",
                registryId=registry_id,
                repositoryName=repository_name,
                filter={"tagStatus": "TAGGED"},
            )

        eligible = set()
        for record in self._records(registry_id, repository_name, details):
            if self.image_filter.is_eligible(record, now):
                eligible.add(record.ref)
        self.logger.debug(f"{repository_name}: {len(eligible)} eligible of {len(details)} tagged image(s)")
        return eligible

    def _records(self, registry_id: str, repository_name: str, details: List[dict]) -> List[ImageRecord]:
        records = []
        for detail in details:
            pushed_at = detail.get("imagePushedAt")
            tags = detail.get("imageTags") or []
            if pushed_at is None or not tags:
                continue
            if pushed_at.tzinfo is None:
                pushed_at = pushed_at.replace(tzinfo=timezone.utc)
            for tag in tags:
                ref = ImageRef(registry_id, self.region, repository_name, tag)
                records.append(ImageRecord(ref=ref, pushed_at=pushed_at))
        return records

    async def delete_images(self, plan: DeletionPlan) -> None:
        """Delete every tag of the plan, at most 100 per call.

        Raises:
            DeletionError: On the first failed call or non-ignorable per-image failure
        """
        total = count_images(plan)
        deleted = 0
        for repository_name, tags in plan.items():
            for index, chunk in enumerate(chunked(list(tags), DELETE_BATCH_SIZE), 1):
                deleted += await self._delete_chunk(repository_name, chunk, index)
                self.logger.info(f"Deleted chunk {index} of {repository_name} ({deleted}/{total})")

    async def _delete_chunk(self, repository_name: str, tags: List[str], index: int) -> int:
        with error_boundary(self._wrap(DeletionError, "BatchDeleteImage"), passthrough=(CleanerError,)):
            response = await run_blocking(
                self.client.batch_delete_image,
                repositoryName=repository_name,
                imageIds=[{"imageTag": tag} for tag in tags],
            )

        failures = response.get("failures") or []
        fatal = []
        for failure in failures:
            tag = (failure.get("imageId") or {}).get("imageTag")
            if failure.get("failureCode") == IMAGE_NOT_FOUND:
                self.logger.warning(f"{repository_name}:{tag} was already deleted")
            else:
                fatal.append(failure)

        if fatal:
            raise DeletionError(
                f"batch_delete_image rejected {len(fatal)} image(s) in {repository_name}",
                details={
                    "repository": repository_name,
                    "chunk": index,
                    "failures": [
                        f"{(f.get('imageId') or {}).get('imageTag')}: {f.get('failureCode')} {f.get('failureReason', '')}"
                        for f in fatal[:5]
                    ],
                },
            )
        return len(tags) - len(failures)
