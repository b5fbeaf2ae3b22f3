"""
Notification System using Apprise.
Sends a Slack summary of each keeper run.
"""

import logging
from typing import List

import apprise

from .core.dispatcher import DispatchResult
from .core.kinds import ScheduleKind

logger = logging.getLogger(__name__)


def format_run_summary(
    kind: ScheduleKind,
    network_name: str,
    last_block: int,
    results: List[DispatchResult]
) -> str:
    """
    Format dispatch results into a notification message.

    Args:
        kind: Schedule kind of the run
        network_name: Network the run targeted
        last_block: Checkpoint reached by the sync
        results: Dispatch results of the run

    Returns:
        Formatted string for notification
    """
    succeeded = [r for r in results if r.success]
    failed = [r for r in results if not r.success and not r.skipped]
    skipped = [r for r in results if r.skipped]

    message_lines = [
        f"🔔 {kind.contract_name} run on {network_name}",
        "",
        f"Synced to block: {last_block}",
        f"Attempted: {len(results)}",
        f"Succeeded: {len(succeeded)}",
        f"Failed: {len(failed)}",
        f"Skipped (allowlist): {len(skipped)}",
    ]

    if failed:
        message_lines.extend(["", "Failures:"])
        for result in failed:
            message_lines.append(
                f"  {result.action} {kind.describe(result.schedule.identity)}: {result.error}"
            )

    if succeeded:
        message_lines.extend(["", "Transactions:"])
        for result in succeeded:
            message_lines.append(f"  {result.action} {kind.describe(result.schedule.identity)}: {result.tx_hash}")

    return "\n".join(message_lines)


def send_notification(message: str, channel_url: str, title: str = "Schedule Keeper Run") -> bool:
    """
    Send notification via Apprise.

    Args:
        message: Formatted message to send
        channel_url: Apprise URL of the channel (empty means not configured)
        title: Notification title

    Returns:
        True if sent or not configured, False on failure
    """
    if not channel_url:
        logger.warning("Notification channel not configured, skipping notification")
        logger.info(f"Message that would be sent:\n{message}")
        return True

    try:
        apobj = apprise.Apprise()

        if not apobj.add(channel_url):
            logger.error("Failed to add notification service")
            return False

        logger.info("Sending notification...")
        result = apobj.notify(body=message, title=title)

        if result:
            logger.info("Successfully sent notification")
        else:
            logger.error("Failed to send notification")

        return bool(result)

    except Exception as e:
        logger.error(f"Error sending notification: {e}", exc_info=True)
        return False


def notify_run(
    kind: ScheduleKind,
    network_name: str,
    last_block: int,
    results: List[DispatchResult],
    channel_url: str
) -> bool:
    """Send the run summary when anything was attempted."""
    if not results:
        logger.info("Nothing dispatched, no notification sent")
        return True

    message = format_run_summary(kind, network_name, last_block, results)
    return send_notification(message, channel_url, title=f"{kind.contract_name} keeper ({network_name})")
