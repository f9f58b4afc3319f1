"""
Images referenced by running ECS services.

Each service's task definition is resolved, together with the task
definitions of its in-progress deployments, so images of both the old and
the new revision are kept during a rolling update.
"""

from typing import List, Set

from ecr_cleaner.scanners.base import AwsReferenceScanner, TaskDefinitionImagesMixin
from ecr_cleaner.utils.concurrency import chunked, fail_fast_join, merge_sets
from ecr_cleaner.utils.image import ImageRef

# describe_services accepts at most 10 services per call
DESCRIBE_SERVICES_BATCH = 10


class EcsServiceScanner(TaskDefinitionImagesMixin, AwsReferenceScanner):
    kind = "ecs-service"
    service_name = "ecs"

    async def _collect_references(self) -> Set[ImageRef]:
        clusters = await self._list("list_clusters", "clusterArns")
        self.logger.debug(f"{self.name}: {len(clusters)} cluster(s)")

        per_cluster = await fail_fast_join(
            (self._cluster_task_definitions(c) for c in clusters), self.limit, name=f"{self.name} clusters"
        )
        task_definitions = merge_sets(per_cluster)
        self.logger.debug(f"{self.name}: {len(task_definitions)} task definition(s) in use by services")

        images = await fail_fast_join(
            (self._task_definition_images(td) for td in sorted(task_definitions)),
            self.limit,
            name=f"{self.name} task definitions",
        )
        return merge_sets(images)

    async def _cluster_task_definitions(self, cluster: str) -> Set[str]:
        services = await self._list("list_services", "serviceArns", cluster=cluster)
        batches = await fail_fast_join(
            (self._describe_services(cluster, chunk) for chunk in chunked(services, DESCRIBE_SERVICES_BATCH)),
            self.limit,
            name=f"{self.name} services of {cluster}",
        )
        return merge_sets(batches)

    async def _describe_services(self, cluster: str, services: List[str]) -> Set[str]:
        response = await self._call("describe_services", cluster=cluster, services=services)
        task_definitions = set()
        for service in response.get("services", []):
            if service.get("taskDefinition"):
                task_definitions.add(service["taskDefinition"])
            for deployment in service.get("deployments") or []:
                if deployment.get("taskDefinition"):
                    task_definitions.add(deployment["taskDefinition"])
        return task_definitions
