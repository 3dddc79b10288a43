from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Literal, Optional

import mailotp.domain.services as domain_services
from mailotp.domain.entities import OtpChallenge, normalize_email
from mailotp.domain.errors import (
    CodeExhausted,
    CodeMismatch,
    DeliveryFailed,
    DeliveryUncertain,
    InvalidCode,
    NoActiveChallenge,
)
from mailotp.domain.ports.challenge_store import ChallengeStorePort
from mailotp.domain.ports.email_port import EmailPort
from mailotp.domain.throttle import ThrottlePolicy

logger = logging.getLogger(__name__)

# how many replaced codes are remembered to answer "invalid" instead of "mismatch"
SUPERSEDED_KEEP = 3


@dataclass(frozen=True)
class IssueResult:
    identity: str
    expires_at: datetime
    cooldown_seconds: int
    delivery: Literal["sent", "uncertain"] = "sent"


@dataclass(frozen=True)
class VerifyResult:
    identity: str
    verified_at: datetime


class OtpService:
    """
    Issues, re-sends and verifies email one-time codes.

    Every read-modify-write of a challenge runs under the store's lock for
    that identity, so a resend and a verify for the same email never
    interleave. Emails are sent after the lock is released.
    """

    def __init__(
        self,
        *,
        store: ChallengeStorePort,
        email: EmailPort,
        throttle: ThrottlePolicy | None = None,
        code_length: int = 6,
        code_ttl_seconds: int = 300,
        delivery_timeout_seconds: float = 5.0,
        pepper: bytes = b"",
        email_subject: str = "Your verification code",
        clock: Callable[[], datetime] = domain_services.utcnow,
    ) -> None:
        self.store = store
        self.email = email
        self.throttle = throttle or ThrottlePolicy()
        self.code_length = code_length
        self.code_ttl_seconds = code_ttl_seconds
        self.delivery_timeout_seconds = delivery_timeout_seconds
        self.email_subject = email_subject
        self._pepper = pepper
        self._clock = clock

    async def issue(self, identity: str) -> IssueResult:
        """Create a fresh challenge, replacing any previous one for the identity."""
        identity = normalize_email(identity)
        async with self.store.lock(identity):
            now = self._clock()
            current = await self.store.get(identity)
            self.throttle.check_resend(current, now)
            challenge, code = self._new_challenge(identity, now, previous=current)
            await self.store.put(challenge)

        logger.info(
            "otp issued",
            extra={"identity": identity, "challenge_id": challenge.challenge_id},
        )
        return await self._deliver(challenge, code)

    async def resend(self, identity: str) -> IssueResult:
        """Replace a pending challenge with a new code. Never creates one."""
        identity = normalize_email(identity)
        async with self.store.lock(identity):
            now = self._clock()
            current = await self.store.get(identity)
            if current is None or not current.is_live(now):
                raise NoActiveChallenge()
            self.throttle.check_resend(current, now)
            challenge, code = self._new_challenge(
                identity,
                now,
                previous=current,
                resend_count=current.resend_count + 1,
            )
            await self.store.put(challenge)

        logger.info(
            "otp resent",
            extra={
                "identity": identity,
                "challenge_id": challenge.challenge_id,
                "resend_count": challenge.resend_count,
            },
        )
        return await self._deliver(challenge, code)

    async def check_cooldown(self, identity: str) -> None:
        """Raise TooSoon if issue() would be refused right now. Stores nothing."""
        identity = normalize_email(identity)
        async with self.store.lock(identity):
            current = await self.store.get(identity)
            self.throttle.check_resend(current, self._clock())

    async def verify(
        self,
        identity: str,
        code: str,
        *,
        on_verified: Optional[Callable[[VerifyResult], Awaitable[None]]] = None,
    ) -> VerifyResult:
        """
        Check `code` against the pending challenge.

        `on_verified` runs under the identity lock once the code matched and
        before the challenge is consumed. If it raises, the challenge is left
        untouched (no attempt spent) so the same code can be submitted again.
        """
        identity = normalize_email(identity)
        code = code.strip()
        async with self.store.lock(identity):
            now = self._clock()
            challenge = await self.store.get(identity)
            if challenge is None or challenge.consumed:
                logger.info("otp verify without challenge", extra={"identity": identity})
                raise InvalidCode()
            if challenge.is_expired(now):
                await self.store.delete(identity)
                logger.info("otp expired", extra={"identity": identity})
                raise InvalidCode()
            self.throttle.check_attempts(challenge)

            if self._matches(code, challenge.salt_b64, challenge.digest_b64):
                result = VerifyResult(identity=identity, verified_at=now)
                if on_verified is not None:
                    await on_verified(result)
                challenge.consume()
                await self.store.delete(identity)
                logger.info(
                    "otp verified",
                    extra={"identity": identity, "challenge_id": challenge.challenge_id},
                )
                return result

            if self._matches_superseded(code, challenge):
                logger.info("otp superseded code submitted", extra={"identity": identity})
                raise InvalidCode()

            remaining = challenge.register_failure()
            await self.store.put(challenge)

        logger.info(
            "otp mismatch",
            extra={"identity": identity, "attempts_remaining": remaining},
        )
        if remaining == 0:
            raise CodeExhausted()
        raise CodeMismatch(remaining)

    def _new_challenge(
        self,
        identity: str,
        now: datetime,
        *,
        previous: OtpChallenge | None,
        resend_count: int = 0,
    ) -> tuple[OtpChallenge, str]:
        code = domain_services.generate_numeric_code(self.code_length)
        salt_b64, digest_b64 = domain_services.make_code_digest(code, pepper=self._pepper)

        superseded: tuple[str, ...] = ()
        if previous is not None and not previous.is_expired(now):
            superseded = (
                f"{previous.salt_b64}:{previous.digest_b64}",
                *previous.superseded,
            )[:SUPERSEDED_KEEP]

        challenge = OtpChallenge(
            identity=identity,
            challenge_id=domain_services.new_challenge_id(),
            salt_b64=salt_b64,
            digest_b64=digest_b64,
            created_at=now,
            expires_at=now + timedelta(seconds=self.code_ttl_seconds),
            attempts_remaining=self.throttle.max_attempts,
            resend_count=resend_count,
            last_sent_at=now,
            superseded=superseded,
        )
        return challenge, code

    def _matches(self, code: str, salt_b64: str, digest_b64: str) -> bool:
        well_formed = len(code) == self.code_length and code.isdigit()
        # always hash so malformed input costs the same
        matched = domain_services.verify_code_digest(
            code, salt_b64, digest_b64, pepper=self._pepper
        )
        return well_formed and matched

    def _matches_superseded(self, code: str, challenge: OtpChallenge) -> bool:
        hit = False
        for entry in challenge.superseded:
            salt_b64, _, digest_b64 = entry.partition(":")
            hit = self._matches(code, salt_b64, digest_b64) or hit
        return hit

    def _email_body(self, code: str) -> str:
        minutes = math.ceil(self.code_ttl_seconds / 60)
        return (
            f"Your verification code is {code}.\n"
            f"It expires in {minutes} minute{'s' if minutes != 1 else ''}. "
            "If you did not request it, you can ignore this email."
        )

    async def _deliver(self, challenge: OtpChallenge, code: str) -> IssueResult:
        result = IssueResult(
            identity=challenge.identity,
            expires_at=challenge.expires_at,
            cooldown_seconds=self.throttle.cooldown_seconds,
        )
        try:
            await asyncio.wait_for(
                self.email.send(
                    to=challenge.identity,
                    subject=self.email_subject,
                    body=self._email_body(code),
                    idempotency_key=challenge.challenge_id,
                ),
                timeout=self.delivery_timeout_seconds,
            )
        except (asyncio.TimeoutError, DeliveryUncertain):
            # the challenge stays; the email may still arrive
            logger.warning(
                "otp delivery uncertain",
                extra={"identity": challenge.identity, "challenge_id": challenge.challenge_id},
            )
            return replace(result, delivery="uncertain")
        except DeliveryFailed as e:
            logger.warning(
                "otp delivery failed",
                extra={
                    "identity": challenge.identity,
                    "challenge_id": challenge.challenge_id,
                    "error": e.detail,
                },
            )
            await self._disarm_cooldown(challenge)
            raise
        return result

    async def _disarm_cooldown(self, sent: OtpChallenge) -> None:
        """Let the user ask for another code right away when the email never left."""
        async with self.store.lock(sent.identity):
            current = await self.store.get(sent.identity)
            if current is None or current.challenge_id != sent.challenge_id:
                return
            current.last_sent_at = None
            await self.store.put(current)
