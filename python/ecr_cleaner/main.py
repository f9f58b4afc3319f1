#!/usr/bin/env python3
"""
Unified entrypoint for the ECR registry cleaner.

Sub-commands:
  init   - Write an example configuration file
  check  - Verify credentials for the registry and every scan target
  plan   - Report images that would be deleted (never deletes)
  apply  - Report, delete and notify
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from ecr_cleaner.cleaner import RegistryCleaner
from ecr_cleaner.utils.config_manager import ConfigManager, DEFAULT_CONFIG_FILE
from ecr_cleaner.utils.error_utils import CleanerError, NotificationError
from ecr_cleaner.utils.health_checks import HealthChecker
from ecr_cleaner.utils.image import DeletionPlan, count_images
from ecr_cleaner.utils.logging_utils import get_logger, log_exception, set_log_level, setup_logging
from ecr_cleaner.utils.report_utils import build_report, format_summary_table, save_json_report

logger = get_logger(__name__)


def confirm_deletion(count: int, repositories: int, force: bool = False) -> bool:
    """Ask before deleting. Returns True when the user confirmed or force is set."""
    if force:
        logger.warning("⚠️  Force mode enabled - skipping confirmation prompt")
        return True

    print("\n" + "=" * 60)
    print(f"⚠️  WARNING: About to delete {count} image(s) from {repositories} repositories")
    print("=" * 60)
    print("This action cannot be undone.")

    while True:
        response = input("Are you sure you want to proceed with deletion? (yes/no): ").lower().strip()
        if response in ["yes", "y"]:
            return True
        elif response in ["no", "n"]:
            return False
        else:
            print("Please enter 'yes' or 'no'.")


def report_plan(plan: DeletionPlan, registry_name: str, mode: str, output: Optional[str] = None,
                timestamp: bool = False) -> None:
    print(format_summary_table(plan))
    if output:
        save_json_report(output, build_report(plan, registry_name, mode), timestamp=timestamp)


async def notify_safely(cleaner: RegistryCleaner, title: str, plan: DeletionPlan) -> bool:
    """Send a notification. Returns False (after logging) if the notifier failed."""
    try:
        await cleaner.notify(title, plan)
        return True
    except NotificationError as e:
        logger.error(str(e))
        return False


async def run_plan(config: ConfigManager, output: Optional[str] = None, timestamp: bool = False) -> int:
    cleaner = await RegistryCleaner.from_config(config)
    plan = await cleaner.plan()
    report_plan(plan, cleaner.registry_name, "plan", output, timestamp)
    notified = await notify_safely(cleaner, f"Images planned for deletion from {cleaner.registry_name}", plan)
    return 0 if notified else 1


async def run_apply(config: ConfigManager, output: Optional[str] = None, force: bool = False,
                    timestamp: bool = False) -> int:
    cleaner = await RegistryCleaner.from_config(config)
    plan = await cleaner.plan()
    report_plan(plan, cleaner.registry_name, "apply", output, timestamp)

    if plan and not confirm_deletion(count_images(plan), len(plan), force):
        logger.info("Deletion cancelled by user")
        return 0

    notified = await notify_safely(cleaner, f"Images to be deleted from {cleaner.registry_name}", plan)
    await cleaner.apply(plan)
    logger.info(f"✅ Deleted {count_images(plan)} image(s) from {cleaner.registry_name}")
    notified = await notify_safely(cleaner, f"Images deleted from {cleaner.registry_name}", plan) and notified
    return 0 if notified else 1


def run_init(config_file: str, to_stdout: bool = False) -> int:
    content = ConfigManager.dump_example_config()
    if to_stdout:
        print(content, end="")
        return 0
    if os.path.exists(config_file):
        logger.error(f"{config_file} already exists, not overwriting it")
        return 1
    with open(config_file, "w") as f:
        f.write(content)
    logger.info(f"Wrote example configuration to {config_file}")
    return 0


def run_check(config: ConfigManager) -> int:
    checker = HealthChecker(config)
    results = checker.run_all_checks()
    return 0 if checker.print_health_report(results) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecr-cleaner",
        description="Delete ECR images that no workload references",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration:
  The tool reads cleaner.yaml by default. Override with --config or the
  CONFIG_FILE environment variable. Other environment variables:
  - AWS_PROFILE: Registry profile when registry.profile_name is unset
  - SLACK_WEBHOOK_URL: Overrides notifier.slack.webhook_url

Examples:
  # Write an example configuration
  ecr-cleaner init

  # Verify credentials
  ecr-cleaner check

  # Show what would be deleted (safe)
  ecr-cleaner plan --output reports/plan.json

  # Keep one report per run (reports/plan-YYYY-MM-DD-HH-MM-SS.json)
  ecr-cleaner plan --output reports/plan.json --timestamp

  # Delete (asks for confirmation unless --force)
  ecr-cleaner apply --force
        """,
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help=f"Path to the configuration file (default: $CONFIG_FILE or {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Write an example configuration file")
    init_parser.add_argument("--stdout", action="store_true", help="Print the example instead of writing it")

    subparsers.add_parser("check", help="Verify credentials for every configured account")

    plan_parser = subparsers.add_parser("plan", help="Report images that would be deleted")
    plan_parser.add_argument("--output", "-o", help="Also write the plan as a JSON report to this path")
    plan_parser.add_argument("--timestamp", action="store_true", help="Add a timestamp to the report filename")

    apply_parser = subparsers.add_parser("apply", help="Delete unused images")
    apply_parser.add_argument("--output", "-o", help="Also write the plan as a JSON report to this path")
    apply_parser.add_argument("--timestamp", action="store_true", help="Add a timestamp to the report filename")
    apply_parser.add_argument("--force", action="store_true", help="Skip the confirmation prompt")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_log_level(logging.DEBUG)

    if args.command == "init":
        return run_init(args.config or os.environ.get("CONFIG_FILE", DEFAULT_CONFIG_FILE), args.stdout)

    try:
        config = ConfigManager(args.config)
        if args.command == "check":
            return run_check(config)
        if args.command == "plan":
            return asyncio.run(run_plan(config, args.output, args.timestamp))
        return asyncio.run(run_apply(config, args.output, args.force, args.timestamp))
    except CleanerError as e:
        logger.error(str(e))
        logger.debug("Error details", exc_info=e)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    except Exception as e:
        log_exception(logger, "Unexpected error", exc_info=e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
