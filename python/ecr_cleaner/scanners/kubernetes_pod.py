"""
Images run by pods of a Kubernetes cluster (e.g. EKS nodes pulling from ECR).

Pods are listed across all namespaces page by page; containers, init
containers and ephemeral containers all count as references.
"""

from typing import Any, Iterator, Optional, Set

from ecr_cleaner.scanners.base import ReferenceScanner
from ecr_cleaner.utils.concurrency import run_blocking
from ecr_cleaner.utils.image import ImageRef, parse_image_uris

POD_PAGE_SIZE = 500


def _pod_images(pod: Any) -> Iterator[str]:
    spec = pod.spec
    if spec is None:
        return
    for containers in (spec.containers, spec.init_containers, spec.ephemeral_containers):
        for container in containers or []:
            if container.image:
                yield container.image


class KubernetesPodScanner(ReferenceScanner):
    kind = "kubernetes-pod"

    def __init__(self, core_v1: Any, target_name: str, limit: Optional[int] = None,
                 context: Optional[str] = None):
        super().__init__(target_name, limit)
        self.core_v1 = core_v1
        self.context = context

    @property
    def name(self) -> str:
        return f"{self.kind}[{self.context or self.target_name}]"

    async def _collect_references(self) -> Set[ImageRef]:
        refs: Set[ImageRef] = set()
        continue_token = None
        pod_count = 0
        while True:
            kwargs = {"limit": POD_PAGE_SIZE}
            if continue_token:
                kwargs["_continue"] = continue_token
            pods = await run_blocking(self.core_v1.list_pod_for_all_namespaces, **kwargs)
            pod_count += len(pods.items)
            for pod in pods.items:
                refs.update(parse_image_uris(_pod_images(pod)))
            continue_token = pods.metadata._continue if pods.metadata else None
            if not continue_token:
                break
        self.logger.debug(f"{self.name}: inspected {pod_count} pod(s)")
        return refs
