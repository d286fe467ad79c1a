"""
Shared data types for CultBot.

- **session_datatypes.py**: Initiation sessions, paths, member snapshots and
  recovery actions.
- **spam_datatypes.py**: Spam tracker records, score breakdowns and the
  bot-suspicion inputs/outputs.
- **moderation_datatypes.py**: Offense log records, profanity matches and
  sanction instructions.
- **activity_datatypes.py**: Message log, per-member activity and game sessions.
- **livestream_datatypes.py**: Live check results and per-platform announcement state.
"""
