"""
Image identifiers and helpers shared by the registry, scanners and reports.

An ImageRef names one tagged image in an ECR registry. Workload definitions
refer to images by URI; only URIs of the form

    <registry_id>.dkr.ecr.<region>.amazonaws.com/<repository>:<tag>

name an image in a registry we manage. Anything else (Docker Hub, public ECR,
digest references) is not ours and parses to None.

A reference pinned by both tag and digest (`<repository>:<tag>@sha256:<digest>`)
does not match either, so it protects nothing: the tagged image it pins can
still be deleted while a workload runs it. Reference images by tag alone, or
exclude such repositories, to keep them.
"""

import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

ECR_IMAGE_URI = re.compile(
    r"^(?P<registry_id>\d{12})\.dkr\.ecr\.(?P<region>[a-z0-9-]+)\.amazonaws\.com/"
    r"(?P<repository_name>[^:@]+):(?P<tag>[^:]+)$"
)

# repository name -> tags to delete
DeletionPlan = Dict[str, List[str]]


@dataclass(frozen=True)
class ImageRef:
    """A tagged image in an ECR registry. Compared exactly on all four fields."""
    registry_id: str
    region: str
    repository_name: str
    tag: str

    def __str__(self) -> str:
        return f"{self.registry_id}.dkr.ecr.{self.region}.amazonaws.com/{self.repository_name}:{self.tag}"


@dataclass(frozen=True)
class ImageRecord:
    """An ImageRef plus the time it was pushed"""
    ref: ImageRef
    pushed_at: datetime


def parse_image_uri(uri: Optional[str]) -> Optional[ImageRef]:
    """Parse an ECR image URI, returning None for anything outside ECR.

    >>> parse_image_uri("123456789012.dkr.ecr.us-east-1.amazonaws.com/team/app:v1")
    ImageRef(registry_id='123456789012', region='us-east-1', repository_name='team/app', tag='v1')
    >>> parse_image_uri("nginx:latest") is None
    True
    """
    if not uri:
        return None
    match = ECR_IMAGE_URI.match(uri)
    if match is None:
        return None
    return ImageRef(
        registry_id=match.group("registry_id"),
        region=match.group("region"),
        repository_name=match.group("repository_name"),
        tag=match.group("tag"),
    )


def parse_image_uris(uris: Iterable[Optional[str]]) -> set:
    """Parse many URIs, silently dropping the ones that are not ECR images."""
    refs = set()
    for uri in uris:
        ref = parse_image_uri(uri)
        if ref is not None:
            refs.add(ref)
    return refs


def build_deletion_plan(targets: Iterable[ImageRef]) -> DeletionPlan:
    """Group target images by repository. Repositories and tags are sorted for stable output."""
    grouped = defaultdict(set)
    for ref in targets:
        grouped[ref.repository_name].add(ref.tag)
    return {repo: sorted(tags) for repo, tags in sorted(grouped.items())}


def count_images(plan: DeletionPlan) -> int:
    return sum(len(tags) for tags in plan.values())
