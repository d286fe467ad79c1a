"""
Background loops for CultBot.

- **periodic_task.py**: Ready-gated, stoppable interval loop.
- **initiation_expiry_scheduler.py**: Recovers missed initiations and ejects
  members whose ritual timed out.
- **livestream_scheduler.py**: Polls the live-stream announcer on an adaptive interval.
"""
