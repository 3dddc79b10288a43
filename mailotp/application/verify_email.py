import logging

from mailotp.application.otp_service import OtpService, VerifyResult
from mailotp.domain.entities import normalize_email
from mailotp.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


async def verify_email(
    uow: UnitOfWorkPort,
    otp_service: OtpService,
    *,
    email: str,
    code: str,
) -> VerifyResult:
    """
    Check the code and mark the account verified in one step.

    The account row is locked first; the code is only consumed once the
    account update has been committed, so a database failure leaves the
    code usable for a retry.
    """
    normalized_email = normalize_email(email)

    async with uow as transaction:
        user = await transaction.accounts.get_by_email_for_update(normalized_email)

        async def mark_verified(result: VerifyResult) -> None:
            if user is None:
                logger.warning("verified code without account", extra={"identity": result.identity})
            elif not user.is_verified:
                await transaction.accounts.set_verified(user.id)
                user.verify()
            await transaction.commit()

        return await otp_service.verify(normalized_email, code, on_verified=mark_verified)
