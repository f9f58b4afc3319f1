"""Images referenced by every ACTIVE task definition revision."""

from typing import Set

from ecr_cleaner.scanners.base import AwsReferenceScanner, TaskDefinitionImagesMixin
from ecr_cleaner.utils.concurrency import fail_fast_join, merge_sets
from ecr_cleaner.utils.image import ImageRef


class TaskDefinitionScanner(TaskDefinitionImagesMixin, AwsReferenceScanner):
    kind = "task-definition"
    service_name = "ecs"

    async def _collect_references(self) -> Set[ImageRef]:
        families = await self._list("list_task_definition_families", "families", status="ACTIVE")
        self.logger.debug(f"{self.name}: {len(families)} active task definition family(ies)")

        per_family = await fail_fast_join(
            (self._family_images(f) for f in families), self.limit, name=f"{self.name} families"
        )
        return merge_sets(per_family)

    async def _family_images(self, family: str) -> Set[ImageRef]:
        # familyPrefix is a prefix match: "web" also lists "web-api"
        arns = await self._list(
            "list_task_definitions", "taskDefinitionArns", familyPrefix=family, status="ACTIVE", sort="DESC"
        )
        refs: Set[ImageRef] = set()
        for arn in arns:
            if _family_of(arn) == family:
                refs.update(await self._task_definition_images(arn))
        return refs


def _family_of(arn: str) -> str:
    """'arn:aws:ecs:...:task-definition/web:12' -> 'web'"""
    return arn.rsplit("/", 1)[-1].rsplit(":", 1)[0]
