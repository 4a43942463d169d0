"""
Bulk message deletion for the clear command.

Discord's bulk delete endpoint rejects messages older than 14 days and
requires between 2 and 100 message ids, so a purge runs as a small pipeline:
fetch candidates, drop the ones that are too old, delete the rest with a
single request (or a plain delete for one message) and report what happened.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

import discord

from utils.constants import (
    BULK_DELETE_MAX_AGE,
    CLEAR_MAX_AMOUNT,
    CLEAR_MIN_AMOUNT,
    CLEAR_USER_FILTER_FETCH_LIMIT,
    ERROR_ALL_MESSAGES_TOO_OLD,
    ERROR_NO_MESSAGES,
)
from utils.logger import get_logger

logger = get_logger("purge")


class ClearStage(Enum):
    VALIDATING = "validating"
    FETCHING = "fetching"
    FILTERING = "filtering"
    DELETING = "deleting"
    REPORTING = "reporting"
    ABORTED = "aborted"


@dataclass
class PurgeResult:
    """
    Outcome of a purge.

    ``stage`` is REPORTING when messages were deleted and ABORTED otherwise,
    in which case ``reason`` holds the message for the user.
    """

    stage: ClearStage
    deleted: int = 0
    skipped: int = 0
    reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.stage is ClearStage.ABORTED


async def fetch_candidates(
    channel: Any, amount: int, author_id: Optional[int] = None
) -> List[discord.Message]:
    """
    Fetch the newest messages of a channel, newest first.

    With ``author_id``, a fixed window of recent messages is fetched and only
    that author's are kept, so fewer than ``amount`` may come back.
    """
    if author_id is None:
        return [message async for message in channel.history(limit=amount)]

    window = [
        message
        async for message in channel.history(limit=CLEAR_USER_FILTER_FETCH_LIMIT)
    ]
    return [message for message in window if message.author.id == author_id][:amount]


def partition_by_age(
    messages: Sequence[discord.Message], now: datetime
) -> Tuple[List[discord.Message], List[discord.Message]]:
    """
    Split messages into (eligible, too_old) for bulk deletion.

    A message exactly 14 days old is still eligible.
    """
    eligible = []
    too_old = []
    for message in messages:
        if now - message.created_at <= BULK_DELETE_MAX_AGE:
            eligible.append(message)
        else:
            too_old.append(message)
    return eligible, too_old


async def delete_messages(channel: Any, messages: Sequence[discord.Message]) -> int:
    """Delete messages with as few requests as possible and return the count."""
    if not messages:
        return 0

    if len(messages) == 1:
        await messages[0].delete()
    else:
        await channel.delete_messages(list(messages))
    return len(messages)


async def purge(
    channel: Any,
    amount: int,
    author_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> PurgeResult:
    """
    Run the whole clear pipeline on ``channel``.

    Args:
        channel: A text-capable channel (anything with ``history`` and
            ``delete_messages``).
        amount: Number of messages to remove, 1 to 100.
        author_id: Only remove messages by this user.
        now: Reference time for the age cutoff, defaults to the current time.

    Returns:
        PurgeResult describing how far the pipeline got.

    Raises:
        ValueError: If ``amount`` is out of range.
    """
    stage = ClearStage.VALIDATING
    if not CLEAR_MIN_AMOUNT <= amount <= CLEAR_MAX_AMOUNT:
        raise ValueError(
            f"amount must be between {CLEAR_MIN_AMOUNT} and {CLEAR_MAX_AMOUNT}"
        )

    stage = ClearStage.FETCHING
    logger.debug(f"Purge stage {stage.value}: channel={channel.id} amount={amount}")
    candidates = await fetch_candidates(channel, amount, author_id)
    if not candidates:
        return PurgeResult(ClearStage.ABORTED, reason=ERROR_NO_MESSAGES)

    stage = ClearStage.FILTERING
    eligible, too_old = partition_by_age(candidates, now or datetime.now(timezone.utc))
    logger.debug(
        f"Purge stage {stage.value}: {len(eligible)} eligible, {len(too_old)} too old"
    )
    if not eligible:
        return PurgeResult(
            ClearStage.ABORTED, skipped=len(too_old), reason=ERROR_ALL_MESSAGES_TOO_OLD
        )

    stage = ClearStage.DELETING
    deleted = await delete_messages(channel, eligible)
    logger.debug(f"Purge stage {stage.value}: {deleted} deleted")

    return PurgeResult(ClearStage.REPORTING, deleted=deleted, skipped=len(too_old))
