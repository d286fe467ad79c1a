"""
Startup check of configured channels, roles and bot permissions.

Runs once on ready for every guild and logs an actionable line per problem.
Nothing is fatal: a missing channel only disables the feature that needs it.
"""

from __future__ import annotations

from typing import List

import discord

from cultbot.configuration.app_configuration import AppConfig, app_config
from cultbot.datatypes.session_datatypes import InitiationPath
from cultbot.util.logger import get_logger

logger = get_logger("config_validator")

REQUIRED_PERMISSIONS = ("manage_roles", "kick_members", "ban_members", "manage_messages")
ADVISORY_PERMISSIONS = ("send_messages", "view_channel")


class ConfigurationValidator:
    """Checks ``app_config.yml`` ids against the guilds the bot is in."""

    def __init__(self, bot: discord.Bot, config: AppConfig = app_config) -> None:
        self.bot = bot
        self.config = config

    def validate_guild(self, guild: discord.Guild) -> List[str]:
        """
        Return the problems found in ``guild`` (empty list when everything checks out).
        """
        ids = self.config.discord
        problems: List[str] = []

        channels = {
            "Gateway channel": ids.gateway_channel_id,
            "Ritual channel": ids.ritual_channel_id,
        }
        if self.config.live_stream.transmissions_channel_id:
            channels["Transmissions channel"] = self.config.live_stream.transmissions_channel_id
        if ids.mod_log_channel_id:
            channels["Mod log channel"] = ids.mod_log_channel_id

        for label, channel_id in channels.items():
            if guild.get_channel(channel_id) is None:
                problems.append(f"{label} not found (ID: {channel_id})")

        roles = {"Uninitiated role": ids.uninitiated_role_id}
        for path in InitiationPath:
            roles[f"{path.display_name} role"] = ids.path_role_ids.get(path.value, 0)

        for label, role_id in roles.items():
            if guild.get_role(role_id) is None:
                problems.append(f"{label} not found (ID: {role_id})")

        me = guild.me
        if me is not None:
            perms = me.guild_permissions
            missing = [name for name in REQUIRED_PERMISSIONS if not getattr(perms, name, False)]
            if missing:
                problems.append(f"Bot is missing critical permissions: {', '.join(missing)}")
            for name in ADVISORY_PERMISSIONS:
                if not getattr(perms, name, False):
                    problems.append(f"Bot lacks the {name} permission")

        return problems

    def validate_all(self) -> bool:
        """Validate every guild; returns True when no problem was found."""
        ok = True
        for guild in self.bot.guilds:
            problems = self.validate_guild(guild)
            if not problems:
                logger.info("[CONFIG] Guild %s (%s): all configuration checks passed", guild.name, guild.id)
                continue

            ok = False
            for problem in problems:
                logger.warning("[CONFIG] Guild %s (%s): %s", guild.name, guild.id, problem)

        if not ok:
            logger.warning("[CONFIG] Configuration problems detected; update config/app_config.yml "
                           "and check the bot's role permissions")
        return ok
