from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from mailotp.domain.ports.challenge_store import ChallengeStorePort
from mailotp.domain.services import utcnow

logger = logging.getLogger(__name__)


class ChallengeJanitor:
    """
    Periodically reclaims expired challenges from a store that has no
    native key expiry. Verification never depends on it: expiry is also
    checked on every read.
    """

    def __init__(
        self,
        *,
        store: ChallengeStorePort,
        interval: float = 60.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.interval = interval
        self.clock = clock

    async def run_forever(self) -> None:
        logger.info("challenge janitor started", extra={"interval": self.interval})
        while True:
            await asyncio.sleep(self.interval)
            await self._sweep_once()

    async def _sweep_once(self) -> int:
        purged = await self.store.purge_expired(self.clock())
        if purged:
            logger.info("purged expired challenges", extra={"count": purged})
        return purged
