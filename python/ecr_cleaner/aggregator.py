"""
Combine the registry's eligible images with every scanner's references.

The enumerator and all scanners run as one fail-fast group:

    targets = eligible - (refs_1 | refs_2 | ... | refs_n)

Results are folded only after every task has succeeded, so the target set
does not depend on completion order. The first failure cancels the rest of
the group and is raised as an AggregationError.
"""

from typing import Iterable, List, Optional, Protocol, Set

from ecr_cleaner.utils.concurrency import fail_fast_join, merge_sets
from ecr_cleaner.utils.error_utils import AggregationError
from ecr_cleaner.utils.image import ImageRef
from ecr_cleaner.utils.logging_utils import get_logger

logger = get_logger(__name__)


class Enumerator(Protocol):
    async def enumerate_eligible(self) -> Set[ImageRef]:
        ...


class Scanner(Protocol):
    async def provide_references(self) -> Set[ImageRef]:
        ...


async def aggregate(enumerator: Enumerator, scanners: Iterable[Scanner],
                    limit: Optional[int] = None) -> Set[ImageRef]:
    """Return the registry images not referenced by any scanner.

    Args:
        enumerator: Provides the eligible registry images.
        scanners: Provide the referenced images; may be empty.
        limit: Maximum number of tasks running at once (None is unbounded).

    Raises:
        AggregationError: Wrapping the first enumeration or scan failure.
    """
    scanners = list(scanners)
    coroutines = [enumerator.enumerate_eligible()] + [s.provide_references() for s in scanners]

    try:
        results: List[Set[ImageRef]] = await fail_fast_join(coroutines, limit, name="aggregation")
    except Exception as e:
        raise AggregationError.wrap(e) from e

    eligible, references = results[0], merge_sets(results[1:])
    targets = set(eligible) - references
    logger.info(
        f"{len(eligible)} eligible image(s), {len(references)} referenced by {len(scanners)} scanner(s), "
        f"{len(targets)} target(s)"
    )
    return targets
