"""
Py-cord cogs for CultBot.

- **events_listener.py**: on_ready wiring (persistent views, validation, schedulers).
- **member_listener.py**: Member join/leave and presence (game) events.
- **message_listener.py**: Slow mode, profanity and spam moderation of messages.
- **live_cmds.py**: ``/live`` manual announcement command.
"""
