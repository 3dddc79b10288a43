from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from mailotp.domain.errors import InvalidStatusTransition

ChallengeState = Literal["pending", "verified", "expired", "exhausted"]


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass
class User:
    id: str | None = None
    email: str | None = None
    name: str = ""
    status: Literal["pending", "verified"] = "pending"

    def __post_init__(self):
        if self.email:
            self.email = normalize_email(self.email)
            if not self.email:
                raise ValueError("email cannot be empty")
        else:
            raise ValueError("email is required")

    @property
    def is_verified(self) -> bool:
        return self.status == "verified"

    def verify(self):
        # verifying twice is harmless
        self.status = "verified"


@dataclass
class OtpChallenge:
    """
    One outstanding code for one identity.

    Only the salted digest of the code is kept. The state is derived from the
    fields and the current time; it only ever moves forward:
    pending -> verified | expired | exhausted.
    """

    identity: str
    challenge_id: str
    salt_b64: str = field(repr=False)
    digest_b64: str = field(repr=False)
    created_at: datetime
    expires_at: datetime
    attempts_remaining: int
    resend_count: int = 0
    last_sent_at: datetime | None = None
    consumed: bool = False
    # "salt:digest" of codes this one replaced, newest first
    superseded: tuple[str, ...] = field(default=(), repr=False)

    def __post_init__(self):
        self.identity = normalize_email(self.identity)
        if self.attempts_remaining < 0:
            raise ValueError("attempts_remaining cannot be negative")
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def state(self, now: datetime) -> ChallengeState:
        if self.consumed:
            return "verified"
        if self.is_expired(now):
            return "expired"
        if self.attempts_remaining == 0:
            return "exhausted"
        return "pending"

    def is_live(self, now: datetime) -> bool:
        return self.state(now) == "pending"

    def register_failure(self) -> int:
        if self.consumed or self.attempts_remaining == 0:
            raise InvalidStatusTransition()
        self.attempts_remaining -= 1
        return self.attempts_remaining

    def consume(self):
        if self.consumed or self.attempts_remaining == 0:
            raise InvalidStatusTransition()
        self.consumed = True
