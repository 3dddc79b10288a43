from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from mailotp.domain.entities import OtpChallenge
from mailotp.domain.errors import CodeExhausted, TooSoon


@dataclass(frozen=True)
class ThrottlePolicy:
    cooldown_seconds: int = 30  # minimum gap between two codes for one identity
    max_attempts: int = 5  # wrong guesses allowed per code

    def cooldown_remaining(self, challenge: OtpChallenge | None, now: datetime) -> int:
        """Whole seconds (rounded up) before a new code may be sent."""
        if challenge is None or challenge.last_sent_at is None:
            return 0
        if challenge.is_expired(now):
            return 0
        elapsed = (now - challenge.last_sent_at).total_seconds()
        left = self.cooldown_seconds - elapsed
        return math.ceil(left) if left > 0 else 0

    def check_resend(self, challenge: OtpChallenge | None, now: datetime) -> None:
        remaining = self.cooldown_remaining(challenge, now)
        if remaining > 0:
            raise TooSoon(remaining)

    def check_attempts(self, challenge: OtpChallenge) -> None:
        if challenge.attempts_remaining <= 0:
            raise CodeExhausted()
