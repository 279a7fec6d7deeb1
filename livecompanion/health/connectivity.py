"""Connectivity monitor publishing online/offline transitions."""

import asyncio
import logging
from typing import Optional

import aiohttp
from pubsub import pub

from ..models.events import ConnectivityEvent

logger = logging.getLogger(__name__)

CONNECTIVITY_TOPIC = "network_connectivity"


class ConnectivityMonitor:
    """Tracks reachability and publishes ConnectivityEvents on transitions."""

    def __init__(self, topic: str = CONNECTIVITY_TOPIC, initially_online: bool = True):
        """Initialize connectivity monitor.

        Args:
            topic: Pub/sub topic for connectivity events
            initially_online: Assumed state before the first probe
        """
        self.topic = topic
        self._is_online = initially_online
        logger.info(f"ConnectivityMonitor initialized with topic: {topic}")

    @property
    def is_online(self) -> bool:
        return self._is_online

    def set_online(self, is_online: bool) -> None:
        """Record connectivity, publishing only when it changes."""
        if is_online == self._is_online:
            return
        self._is_online = is_online
        logger.info(f"Connectivity: {'online' if is_online else 'offline'}")
        pub.sendMessage(self.topic, event=ConnectivityEvent(is_online=is_online))

    async def probe(self, url: str, timeout_seconds: float = 5.0) -> bool:
        """Check whether url answers at all. Updates and returns connectivity."""
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.head(url, allow_redirects=True) as response:
                    online = response.status < 500
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Connectivity probe to {url} failed: {e}")
            online = False
        self.set_online(online)
        return online

    async def run(self, url: str, interval_seconds: float = 10.0,
                  timeout_seconds: Optional[float] = None) -> None:
        """Probe url every interval_seconds until cancelled."""
        timeout_seconds = timeout_seconds or min(interval_seconds, 5.0)
        logger.info(f"Probing {url} every {interval_seconds}s")
        while True:
            await self.probe(url, timeout_seconds)
            await asyncio.sleep(interval_seconds)
