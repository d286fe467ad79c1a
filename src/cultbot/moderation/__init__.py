"""
Automated chat moderation for CultBot.

- **spam_tracker.py**: Sliding-window spam scoring, slow-mode flags and the
  bot-suspicion heuristic.
- **profanity_detector.py**: Exact and obfuscation-tolerant term matching.
- **escalation_policy.py**: Turns spam scores and offense counts into sanctions.
- **sanction_executor.py**: Records sanctions and carries them out on Discord.
"""
