"""
YouTube Data API v3 client answering "is the channel live right now?".

Uses the ``search`` endpoint (``eventType=live``). The channel id comes from
configuration or is resolved once from the channel handle and cached. Every
failure is logged and reported as "not live".
"""

from __future__ import annotations

import aiohttp

from cultbot.datatypes.livestream_datatypes import LiveCheckResult
from cultbot.util.logger import get_logger

logger = get_logger("youtube_client")

SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
CHANNEL_URL = "https://www.youtube.com/{handle}"


class YouTubeLiveClient:
    """
    Live-status oracle backed by the YouTube Data API.

    Args:
        api_key: API key; when empty every check reports "not live".
        channel_handle: Channel handle such as ``@SomeChannel``.
        channel_id: Optional channel id that skips handle resolution.
        timeout_seconds: Total timeout per HTTP request.
    """

    def __init__(
        self,
        api_key: str | None,
        channel_handle: str = "",
        channel_id: str = "",
        timeout_seconds: float = 15.0,
    ) -> None:
        self.api_key = api_key or ""
        self.channel_handle = channel_handle
        self._channel_id: str | None = channel_id or None
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

        if not self.api_key:
            logger.warning("[YOUTUBE] YOUTUBE_API_KEY is not set; live checks will always report offline")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create an aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _search(self, **params) -> list:
        session = await self._get_session()
        query = {"part": "snippet", "maxResults": "1", "key": self.api_key, **params}
        async with session.get(SEARCH_URL, params=query) as resp:
            if resp.status != 200:
                error_text = await resp.text()
                logger.error("[YOUTUBE] Search request failed: %s - %s", resp.status, error_text[:200])
                return []
            data = await resp.json()
        return data.get("items") or []

    async def _resolve_channel_id(self) -> str | None:
        if self._channel_id:
            return self._channel_id

        handle = self.channel_handle.lstrip("@")
        if not handle:
            logger.error("[YOUTUBE] No channel id or handle configured")
            return None

        logger.info("[YOUTUBE] Resolving channel id for handle @%s", handle)
        items = await self._search(q=handle, type="channel")
        if not items:
            logger.error("[YOUTUBE] Could not find a channel for handle @%s", handle)
            return None

        self._channel_id = items[0].get("snippet", {}).get("channelId")
        logger.info("[YOUTUBE] Resolved channel id %s", self._channel_id)
        return self._channel_id

    async def check_if_live(self) -> LiveCheckResult:
        if not self.api_key:
            return LiveCheckResult.offline()

        try:
            channel_id = await self._resolve_channel_id()
            if not channel_id:
                return LiveCheckResult.offline()

            items = await self._search(channelId=channel_id, eventType="live", type="video")
            if not items:
                logger.debug("[YOUTUBE] No live stream detected")
                return LiveCheckResult.offline()

            video_id = items[0].get("id", {}).get("videoId")
            if not video_id:
                return LiveCheckResult.offline()

            title = items[0].get("snippet", {}).get("title", "")
            logger.info("[YOUTUBE] Found live stream %s (%s)", video_id, title)
            return LiveCheckResult(is_live=True, video_id=video_id, video_url=WATCH_URL.format(video_id=video_id))
        except (aiohttp.ClientError, TimeoutError, ValueError) as exc:
            logger.error("[YOUTUBE] Live check failed: %s", exc)
            return LiveCheckResult.offline()

    async def resolve_channel_url(self) -> str | None:
        """Public channel URL, or None when the channel cannot be resolved."""
        if not self.api_key and not self._channel_id:
            return None
        try:
            channel_id = await self._resolve_channel_id()
        except (aiohttp.ClientError, TimeoutError, ValueError) as exc:
            logger.error("[YOUTUBE] Channel resolution failed: %s", exc)
            return None
        if not channel_id:
            return None
        if self.channel_handle:
            return CHANNEL_URL.format(handle=self.channel_handle)
        return f"https://www.youtube.com/channel/{channel_id}"
