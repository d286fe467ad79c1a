"""
Discord-facing components for CultBot.

- **bot_services.py**: Builds and owns the long-lived services handed to cogs.
- **onboarding.py**: Welcome and ritual messages, path buttons, ejection and recovery.
- **config_validator.py**: Checks configured channels, roles and permissions per guild.
- **announcements.py**: Live-stream announcement embed and guild broadcaster.
- **cogs/**: Event listeners and slash commands.
"""
