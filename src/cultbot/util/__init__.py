"""
Utility functions and helpers for CultBot.

- **logger.py**: Centralized logging configuration with colored console output
  through prompt_toolkit, a rotating per-session log file, and suppression of
  noisy library loggers.

- **ready_signal.py**: One-shot readiness gate awaited by background loops.

- **time_utils.py**: Aware-UTC clock and conversion to/from the unix seconds
  stored in SQLite.

- **discord_utils.py**: Stateless Discord helpers (safe DMs, self-deleting
  notices, message deletion, mod-log posts, account age/avatar checks).
"""
