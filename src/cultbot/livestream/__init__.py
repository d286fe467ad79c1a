"""
Live-stream detection and announcement for CultBot.

- **youtube_client.py**: YouTube Data API search for the channel's live video (aiohttp).
- **poll_policy.py**: Check window and adaptive polling interval.
- **live_announcer.py**: Announces each live video once per live period.
"""
