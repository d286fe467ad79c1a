"""
CultBot - Onboarding and Moderation Automaton for a Discord Community

CultBot initiates new members through a timed ritual, polices chat for spam
and profanity with escalating sanctions, and announces when the linked
YouTube channel goes live.

Core Components:

- **Initiation**: Session state machine (pending, completed, expired) with an
  expiry sweep that ejects members who never choose a path, and a
  reconciliation pass that recovers members missed while the bot was down
- **Moderation**: Sliding-window spam scoring, bot-suspicion heuristics,
  obfuscation-tolerant profanity matching and an escalation policy that turns
  scores and offense counts into warnings, slow mode and bans
- **Live Streams**: Adaptive polling of the YouTube Data API with per-video
  announcement de-duplication
- **Activity Tracking**: Message, join/leave and game statistics per member

Usage:
    from cultbot.main import main
    main()
"""
