"""
Permission and role-hierarchy checks shared by the moderation commands.

The checks run in a fixed order and stop at the first failure, so a user who
breaks several rules at once always gets the same message.
"""

from enum import Enum
from typing import Optional

import discord

from utils.constants import ERROR_GUILD_ONLY


class GuardViolation(Enum):
    NO_GUILD = "no_guild"
    NOT_A_MEMBER = "not_a_member"
    SELF_TARGET = "self_target"
    BOT_TARGET = "bot_target"
    OWNER_TARGET = "owner_target"
    ACTOR_HIERARCHY = "actor_hierarchy"
    BOT_HIERARCHY = "bot_hierarchy"
    NOT_ACTIONABLE = "not_actionable"


# Actions whose target has to be a current member of the guild
MEMBER_REQUIRED_ACTIONS = frozenset({"kick"})

# Guild permission the bot itself needs to carry out each action
ACTION_PERMISSIONS = {
    "kick": "kick_members",
    "ban": "ban_members",
}


def _bot_can(action: str, bot_member: Optional[discord.Member]) -> bool:
    if bot_member is None:
        return True
    permission = ACTION_PERMISSIONS.get(action)
    return not permission or bool(getattr(bot_member.guild_permissions, permission))


def check_moderation_target(
    action: str,
    guild: Optional[discord.Guild],
    actor: discord.abc.User,
    target: discord.abc.User,
    target_member: Optional[discord.Member],
    bot_member: Optional[discord.Member],
) -> Optional[GuardViolation]:
    """
    Decide whether ``actor`` may apply ``action`` to ``target``.

    Args:
        action: Moderation action name ("kick" or "ban").
        guild: Guild the command was used in, None in DMs.
        actor: The invoking user (a Member inside a guild).
        target: The user being acted on.
        target_member: ``target`` as a guild member, None if not in the guild.
        bot_member: The bot's own member object in ``guild``.

    Returns:
        The first violated rule, or None when the action may proceed.
    """
    if guild is None:
        return GuardViolation.NO_GUILD

    if target_member is None and action in MEMBER_REQUIRED_ACTIONS:
        return GuardViolation.NOT_A_MEMBER

    if target.id == actor.id:
        return GuardViolation.SELF_TARGET

    if bot_member is not None and target.id == bot_member.id:
        return GuardViolation.BOT_TARGET

    if target.id == guild.owner_id:
        return GuardViolation.OWNER_TARGET

    # Hierarchy only applies to current members
    if target_member is None:
        if not _bot_can(action, bot_member):
            return GuardViolation.NOT_ACTIONABLE
        return None

    actor_top_role = getattr(actor, "top_role", None)
    if actor_top_role is not None:
        if target_member.top_role.position >= actor_top_role.position:
            return GuardViolation.ACTOR_HIERARCHY

    if bot_member is not None:
        if target_member.top_role.position >= bot_member.top_role.position:
            return GuardViolation.BOT_HIERARCHY

        if not _bot_can(action, bot_member):
            return GuardViolation.NOT_ACTIONABLE

    return None


def guard_message(violation: GuardViolation, action: str) -> str:
    """Ephemeral reply text for a failed check."""
    messages = {
        GuardViolation.NO_GUILD: ERROR_GUILD_ONLY,
        GuardViolation.NOT_A_MEMBER: "❌ User is not in this server.",
        GuardViolation.SELF_TARGET: f"❌ You cannot {action} yourself.",
        GuardViolation.BOT_TARGET: f"❌ I cannot {action} myself.",
        GuardViolation.OWNER_TARGET: f"❌ You cannot {action} the server owner.",
        GuardViolation.ACTOR_HIERARCHY: (
            f"❌ You cannot {action} a user with equal or higher role than you."
        ),
        GuardViolation.BOT_HIERARCHY: (
            f"❌ I cannot {action} a user with equal or higher role than me."
        ),
        GuardViolation.NOT_ACTIONABLE: (
            f"❌ I cannot {action} this user. They may have higher permissions."
        ),
    }
    return messages[violation]
