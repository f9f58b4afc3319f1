"""
Base classes for reference scanners.

A scanner reports which ECR images are referenced by one kind of live
workload. Subclasses implement ``_collect_references``; callers only use
``provide_references``, which turns any failure into a ScanError.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Set

from botocore.exceptions import BotoCoreError, ClientError

from ecr_cleaner.utils.concurrency import collect_pages, error_boundary, run_blocking
from ecr_cleaner.utils.error_utils import CleanerError, ScanError, create_aws_error
from ecr_cleaner.utils.image import ImageRef, parse_image_uris
from ecr_cleaner.utils.logging_utils import get_logger


class ReferenceScanner(ABC):
    """Reports the set of images referenced by one category of workloads"""

    kind: str = "scanner"

    def __init__(self, target_name: str, limit: Optional[int] = None):
        self.target_name = target_name
        self.limit = limit
        self.logger = get_logger(self.__class__.__name__)

    @property
    def name(self) -> str:
        return f"{self.kind}[{self.target_name}]"

    async def provide_references(self) -> Set[ImageRef]:
        """Return every ECR image referenced by this scanner's workloads.

        An empty set is a valid answer.

        Raises:
            ScanError: If listing or describing the workloads fails
        """
        with error_boundary(self._wrap_error, passthrough=(CleanerError,)):
            refs = await self._collect_references()
        self.logger.info(f"{self.name}: found {len(refs)} referenced image(s)")
        return refs

    @abstractmethod
    async def _collect_references(self) -> Set[ImageRef]:
        ...

    def _wrap_error(self, error: Exception) -> CleanerError:
        return ScanError(f"{self.name} failed: {error}", source=error, details={"scanner": self.name})

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class AwsReferenceScanner(ReferenceScanner):
    """A scanner backed by one boto3 client"""

    service_name: str = ""

    def __init__(self, session: Any, target_name: str, limit: Optional[int] = None,
                 profile_name: Optional[str] = None, client: Any = None):
        super().__init__(target_name, limit)
        self.profile_name = profile_name
        self.client = client if client is not None else session.client(self.service_name)

    def _wrap_error(self, error: Exception) -> CleanerError:
        if isinstance(error, (ClientError, BotoCoreError)):
            operation = getattr(error, "operation_name", None) or self.service_name
            wrapped = create_aws_error(
                ScanError, f"{self.service_name}:{operation}", error, profile_name=self.profile_name
            )
            wrapped.details["scanner"] = self.name
            return wrapped
        return super()._wrap_error(error)

    async def _list(self, operation: str, result_key: str, **kwargs: Any) -> list:
        return await collect_pages(self.client, operation, result_key, **kwargs)

    async def _call(self, operation: str, **kwargs: Any) -> dict:
        return await run_blocking(getattr(self.client, operation), **kwargs)


class TaskDefinitionImagesMixin:
    """Resolves a task definition to the ECR images its containers run"""

    client: Any

    async def _task_definition_images(self, task_definition: str) -> Set[ImageRef]:
        response = await run_blocking(self.client.describe_task_definition, taskDefinition=task_definition)
        containers: Iterable[dict] = (response.get("taskDefinition") or {}).get("containerDefinitions") or []
        return parse_image_uris(c.get("image") for c in containers)
