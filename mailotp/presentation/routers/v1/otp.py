from typing import Annotated, Callable

from fastapi import APIRouter, Depends, status

from mailotp.application.otp_service import IssueResult, OtpService
from mailotp.application.register_user import register_user
from mailotp.application.verify_email import verify_email
from mailotp.domain.ports.unit_of_work import UnitOfWorkPort
from mailotp.presentation.dependencies import (
    get_hash_password,
    get_otp_service,
    get_uow,
)
from mailotp.schemas.requests import RegisterIn, ResendIn, VerifyIn
from mailotp.schemas.responses import OtpOut

router = APIRouter(prefix="/auth", tags=["OTP"])


def _issued(result: IssueResult | None, otp_service: OtpService, sent: str) -> OtpOut:
    if result is not None and result.delivery == "uncertain":
        message = "OTP requested, the email may take a while to arrive"
    else:
        message = sent
    cooldown = result.cooldown_seconds if result else otp_service.throttle.cooldown_seconds
    return OtpOut(success=True, message=message, remaining_seconds=cooldown)


@router.post(
    "/register-and-issue",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=OtpOut,
    response_model_exclude_none=True,
)
async def post_register_and_issue(
    body: RegisterIn,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    otp_service: Annotated[OtpService, Depends(get_otp_service)],
    hash_password: Annotated[Callable[..., str], Depends(get_hash_password)],
):
    result = await register_user(
        uow,
        otp_service,
        name=body.name,
        email=body.email,
        password=body.password,
        hash_password=hash_password,
    )
    return _issued(result, otp_service, "OTP sent to your email")


@router.post(
    "/resend",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=OtpOut,
    response_model_exclude_none=True,
)
async def post_resend(
    body: ResendIn,
    otp_service: Annotated[OtpService, Depends(get_otp_service)],
):
    result = await otp_service.resend(body.email)
    return _issued(result, otp_service, "New OTP sent to your email")


@router.post("/verify", response_model=OtpOut, response_model_exclude_none=True)
async def post_verify(
    body: VerifyIn,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    otp_service: Annotated[OtpService, Depends(get_otp_service)],
):
    await verify_email(uow, otp_service, email=body.email, code=body.code)
    return OtpOut(success=True, message="Email verified successfully")
