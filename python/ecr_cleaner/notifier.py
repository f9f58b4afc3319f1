"""
Slack notifications for plan and apply results.

The message is a single attachment whose field title is the message title
and whose value is a per-repository count table.
"""

from typing import Any, Dict, Optional

import requests

from ecr_cleaner.utils.concurrency import run_blocking
from ecr_cleaner.utils.config_manager import SlackNotifierConfig
from ecr_cleaner.utils.error_utils import ErrorCategory, NotificationError
from ecr_cleaner.utils.image import DeletionPlan
from ecr_cleaner.utils.logging_utils import get_logger

REQUEST_TIMEOUT = 30


def format_count_table(plan: DeletionPlan) -> str:
    lines = ["Repo | Count", "----------------"]
    for repo, tags in plan.items():
        lines.append(f"{repo} | {len(tags)}")
    return "\n".join(lines) + "\n"


class SlackNotifier:
    """Posts summaries to a Slack incoming webhook"""

    def __init__(self, config: SlackNotifierConfig, session: Optional[requests.Session] = None):
        self.webhook_url = config.webhook_url
        self.username = config.username
        self.channel = config.channel
        self.icon_url = config.icon_url
        self.http = session or requests.Session()
        self.logger = get_logger(self.__class__.__name__)

    def build_payload(self, title: str, summary: DeletionPlan) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "attachments": [
                {
                    "color": "#36a64f",
                    "fields": [
                        {
                            "title": title,
                            "value": f"```{format_count_table(summary)}```",
                            "short": False,
                        }
                    ],
                }
            ]
        }
        if self.username:
            payload["username"] = self.username
        if self.channel:
            payload["channel"] = self.channel
        if self.icon_url:
            payload["icon_url"] = self.icon_url
        return payload

    async def notify(self, title: str, summary: DeletionPlan) -> None:
        """Send one message.

        Raises:
            NotificationError: If the webhook cannot be reached or rejects the message
        """
        payload = self.build_payload(title, summary)
        try:
            response = await run_blocking(self.http.post, self.webhook_url, json=payload, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise NotificationError(
                f"Failed to post '{title}' to Slack",
                source=e,
                category=ErrorCategory.CONNECTION if status is None else ErrorCategory.RESOURCE,
                suggestions=[
                    "Verify the webhook URL is still active in the Slack app settings",
                    "Check network connectivity to hooks.slack.com",
                ],
                details={"status_code": status} if status is not None else None,
            ) from e
        self.logger.info(f"Sent Slack notification: {title}")
