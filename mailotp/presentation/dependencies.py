from typing import Callable

from fastapi import Request

from mailotp.application.otp_service import OtpService
from mailotp.domain.ports.unit_of_work import UnitOfWorkPort
from mailotp.infrastructure.db.pool import get_pool
from mailotp.infrastructure.db.uow import PgUnitOfWork
from mailotp.infrastructure.security.password import hash_password


def get_uow() -> UnitOfWorkPort:
    return PgUnitOfWork(get_pool())


def get_otp_service(request: Request) -> OtpService:
    # This is set in mailotp.main lifespan()
    return request.app.state.otp_service


def get_hash_password() -> Callable[..., str]:
    return hash_password
