#!/usr/bin/env python3
"""
Filter rules deciding which registry images are deletion candidates.

A FilterRule applies to repositories whose name matches its glob pattern:
an image in such a repository must be at least ``min_age_days`` old and its
tag must not match any of ``ignore_tag_patterns``. Rules whose pattern does
not match a repository say nothing about its images. All rules must agree
for an image to be eligible, so overlapping rules tighten each other.

Glob patterns are case-sensitive and are compiled once, when the filter is
built. ``*`` and ``**`` both match any run of characters, slashes included;
``**`` is only accepted as a whole path component (``team/**``, ``**/app``).
A malformed pattern raises ConfigValidationError at that point.
"""

import fnmatch
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Pattern

from ecr_cleaner.utils.error_utils import create_config_error
from ecr_cleaner.utils.image import ImageRecord


def _find_unclosed_class(pattern: str) -> Optional[int]:
    """Return the index of a '[' that never closes, if any."""
    i = 0
    while i < len(pattern):
        if pattern[i] == "[":
            j = i + 1
            if j < len(pattern) and pattern[j] == "!":
                j += 1
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            while j < len(pattern) and pattern[j] != "]":
                j += 1
            if j >= len(pattern):
                return i
            i = j
        i += 1
    return None


def _find_misplaced_globstar(pattern: str) -> Optional[int]:
    """Return the index of a '**' that is not a whole path component, if any."""
    for run in re.finditer(r"\*{2,}", pattern):
        start, end = run.span()
        if end - start > 2:
            return start
        if start > 0 and pattern[start - 1] != "/":
            return start
        if end < len(pattern) and pattern[end] != "/":
            return start
    return None


def compile_glob(pattern: Any, field_name: str) -> Pattern:
    """Compile a shell-style glob into a case-sensitive regex.

    fnmatch itself never rejects a pattern, so the checks below reject the
    shapes that would otherwise be silently matched literally.
    """
    if not isinstance(pattern, str) or not pattern:
        raise create_config_error(field_name, pattern, "pattern must be a non-empty string")
    globstar = _find_misplaced_globstar(pattern)
    if globstar is not None:
        raise create_config_error(field_name, pattern,
                                  f"'**' must be a whole path component, found at position {globstar}")
    unclosed = _find_unclosed_class(pattern)
    if unclosed is not None:
        raise create_config_error(field_name, pattern, f"unclosed character class at position {unclosed}")
    try:
        return re.compile(fnmatch.translate(pattern))
    except re.error as e:
        raise create_config_error(field_name, pattern, str(e)) from e


@dataclass
class FilterRule:
    """One configured filter rule"""
    pattern: str
    min_age_days: int = 0
    ignore_tag_patterns: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> "FilterRule":
        prefix = f"registry.filters[{index}]"
        if not isinstance(data, dict):
            raise create_config_error(prefix, data, "filter must be a mapping")
        days = data.get("days_after")
        if days is None:
            days = 0
        if isinstance(days, bool) or not isinstance(days, int) or days < 0:
            raise create_config_error(f"{prefix}.days_after", days, "must be a non-negative integer")
        ignore = data.get("ignore_tag_patterns") or []
        if not isinstance(ignore, list):
            raise create_config_error(f"{prefix}.ignore_tag_patterns", ignore, "must be a list of globs")
        return cls(pattern=data.get("pattern"), min_age_days=days, ignore_tag_patterns=list(ignore))


class _CompiledRule:
    __slots__ = ("pattern", "min_age", "ignore_tags")

    def __init__(self, rule: FilterRule, index: int):
        self.pattern = compile_glob(rule.pattern, f"registry.filters[{index}].pattern")
        self.min_age = timedelta(days=rule.min_age_days)
        self.ignore_tags = [
            compile_glob(p, f"registry.filters[{index}].ignore_tag_patterns[{j}]")
            for j, p in enumerate(rule.ignore_tag_patterns)
        ]

    def allows(self, record: ImageRecord, now: datetime) -> bool:
        if not self.pattern.match(record.ref.repository_name):
            return True

        # pushed after the cutoff: too young to delete. Exactly at the cutoff is old enough.
        if record.pushed_at > now - self.min_age:
            return False

        for ignore in self.ignore_tags:
            if ignore.match(record.ref.tag):
                return False

        return True


class ImageFilter:
    """The AND-combination of a list of filter rules"""

    def __init__(self, rules: Optional[Iterable[FilterRule]] = None):
        self.rules = list(rules or [])
        self._compiled = [_CompiledRule(rule, i) for i, rule in enumerate(self.rules)]

    def is_eligible(self, record: ImageRecord, now: datetime) -> bool:
        return all(rule.allows(record, now) for rule in self._compiled)

    def __len__(self) -> int:
        return len(self._compiled)


class RepositoryExcluder:
    """Repositories matching any pattern are skipped entirely"""

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self.patterns = list(patterns or [])
        self._compiled = [compile_glob(p, f"registry.excludes[{i}]") for i, p in enumerate(self.patterns)]

    def is_excluded(self, repository_name: str) -> bool:
        return any(p.match(repository_name) for p in self._compiled)
