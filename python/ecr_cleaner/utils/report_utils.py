"""
Utility functions for rendering and saving deletion plans.

This module provides functions to:
- Render a plan as a per-repository table
- Save a plan as a JSON report
- Generate timestamped report filenames
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from tabulate import tabulate

from ecr_cleaner.utils.image import DeletionPlan, count_images
from ecr_cleaner.utils.logging_utils import get_logger

logger = get_logger(__name__)


# ============================================================================
# Formatting Utilities
# ============================================================================

def format_summary_table(plan: DeletionPlan) -> str:
    """Render a plan as a grid table with one row per repository.

    Args:
        plan: Repository name -> tags

    Returns:
        Table string with columns Repo, Tags (one per line) and Total
    """
    rows = [[repo, "\n".join(tags), len(tags)] for repo, tags in plan.items()]
    if not rows:
        return "No images to delete."
    table = tabulate(rows, headers=["Repo", "Tags", "Total"], tablefmt="grid")
    return f"{table}\nTotal: {count_images(plan)} image(s) in {len(plan)} repositor{'y' if len(plan) == 1 else 'ies'}"


# ============================================================================
# Timestamp Utilities
# ============================================================================

def get_timestamp_suffix() -> str:
    """
    Generate a timestamp suffix for report filenames.

    Returns:
        String in format: YYYY-MM-DD-HH-MM-SS
    """
    return datetime.now().strftime("%Y-%m-%d-%H-%M-%S")


def add_timestamp_to_path(path: str, timestamp: Optional[str] = None) -> str:
    """
    Add a timestamp to a file path before the extension.

    Args:
        path: Original file path (e.g., 'reports/plan.json')
        timestamp: Optional timestamp string (defaults to current time)

    Returns:
        Path with timestamp inserted (e.g., 'reports/plan-2026-01-15-14-30-00.json')
    """
    if timestamp is None:
        timestamp = get_timestamp_suffix()

    p = Path(path)
    return str(p.parent / f"{p.stem}-{timestamp}{p.suffix}")


# ============================================================================
# Report Saving Functions
# ============================================================================

def build_report(plan: DeletionPlan, registry: str, mode: str) -> Dict[str, Any]:
    return {
        "registry": registry,
        "mode": mode,
        "generated_at": datetime.now().astimezone().isoformat(),
        "total": count_images(plan),
        "repositories": plan,
    }


def save_json_report(path: str, report: Dict[str, Any], timestamp: bool = False) -> str:
    """
    Write a report as JSON, creating parent directories as needed.

    Args:
        path: Output file path
        report: JSON-serializable report
        timestamp: If True, add timestamp to the filename

    Returns:
        Path of the written file
    """
    if timestamp:
        path = add_timestamp_to_path(path)
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w") as f:
        json.dump(report, f, indent=2)
    logger.info(f"Report saved to {out}")
    return str(out)
