import logging
from typing import Callable

from mailotp.application.otp_service import IssueResult, OtpService
from mailotp.domain.entities import normalize_email
from mailotp.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


async def register_user(
    uow: UnitOfWorkPort,
    otp_service: OtpService,
    *,
    name: str,
    email: str,
    password: str,
    hash_password: Callable[..., str],
) -> IssueResult | None:
    """
    Create or refresh the pending account, then issue its first code.

    Returns None when the account is already verified: no code is sent, and
    the caller answers exactly as if one had been, so registration cannot be
    used to probe which emails have accounts.

    A registration refused with TooSoon leaves the stored account unchanged.
    """
    normalized_email = normalize_email(email)
    # refuse before touching the account; issue() re-checks under the lock
    await otp_service.check_cooldown(normalized_email)
    hashed_password = hash_password(password)

    async with uow as transaction:
        user = await transaction.accounts.create_or_update_pending(
            normalized_email, name.strip(), hashed_password
        )
        await transaction.commit()

    if user.is_verified:
        logger.info("registration for verified account", extra={"user_id": user.id})
        return None
    return await otp_service.issue(normalized_email)
