"""
discord_utils.py
================

Low-level Discord helpers for CultBot.

Stateless wrappers around the Discord operations the bot performs from
several places (direct messages, self-deleting notices, mod-log posts), each
translating the expected failures into a logged boolean instead of an
exception.
"""

from __future__ import annotations

import datetime
from typing import Union

import discord

from cultbot.util.logger import get_logger

logger = get_logger("discord_utils")


def is_ignored_author(author: Union[discord.User, discord.Member]) -> bool:
    """
    Check if an author should be ignored by moderation handlers (bots or non-members).

    Args:
        author (discord.User | discord.Member): The user or member to check.

    Returns:
        bool: True if the author is a bot or not a member, False otherwise.
    """
    return author.bot or not isinstance(author, discord.Member)


def has_default_avatar(user: Union[discord.User, discord.Member]) -> bool:
    """True when the account has no custom avatar uploaded."""
    return getattr(user, "avatar", None) is None


def account_created_at(user: Union[discord.User, discord.Member]) -> datetime.datetime:
    created = user.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=datetime.timezone.utc)
    return created


async def safe_send_dm(user: Union[discord.User, discord.Member], content: str) -> bool:
    """
    Try to DM ``user``. DMs disabled or blocked is not an error.

    Returns:
        bool: True if the message was delivered.
    """
    try:
        await user.send(content)
        return True
    except discord.Forbidden:
        logger.debug("[DM] %s has direct messages disabled", user)
    except discord.HTTPException as exc:
        logger.debug("[DM] Failed to DM %s: %s", user, exc)
    return False


async def send_self_deleting(
    channel: discord.abc.Messageable,
    *,
    content: str | None = None,
    embed: discord.Embed | None = None,
    delete_after: float,
) -> bool:
    """Post a notice that Discord removes after ``delete_after`` seconds."""
    try:
        await channel.send(content=content, embed=embed, delete_after=delete_after)
        return True
    except discord.HTTPException as exc:
        logger.warning("[NOTICE] Failed to post notice in %s: %s", getattr(channel, "id", "?"), exc)
        return False


async def safe_delete_message(message: discord.Message) -> bool:
    """Delete ``message``; already deleted counts as success."""
    try:
        await message.delete()
        return True
    except discord.NotFound:
        return True
    except discord.Forbidden:
        logger.warning("[DELETE] Missing permission to delete message %s", message.id)
    except discord.HTTPException as exc:
        logger.warning("[DELETE] Failed to delete message %s: %s", message.id, exc)
    return False


async def post_to_mod_log(guild: discord.Guild, channel_id: int, content: str) -> None:
    """Best-effort post to the moderation log channel; disabled when ``channel_id`` is 0."""
    if not channel_id:
        return

    channel = guild.get_channel(channel_id)
    if channel is None:
        logger.warning("[MOD LOG] Channel %s not found in guild %s", channel_id, guild.id)
        return

    try:
        await channel.send(content)
    except discord.HTTPException as exc:
        logger.warning("[MOD LOG] Failed to post in guild %s: %s", guild.id, exc)
