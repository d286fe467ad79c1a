"""
Member initiation for CultBot.

- **initiation_state_machine.py**: Pending, completed and expired session
  transitions with the at-most-one-pending guarantee per member and guild.
- **reconciliation.py**: Finds members who should have a ritual but do not
  (joined while the bot was offline).
"""
