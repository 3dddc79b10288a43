import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from mailotp.application.otp_service import OtpService
from mailotp.domain.ports.challenge_store import ChallengeStorePort
from mailotp.domain.ports.email_port import EmailPort
from mailotp.domain.throttle import ThrottlePolicy
from mailotp.infrastructure.db.pool import close_pool, get_pool
from mailotp.infrastructure.email.http_smtp_adapter import HttpSmtpEmailAdapter
from mailotp.infrastructure.http.client import close_http_client, open_http_client
from mailotp.infrastructure.memory.challenge_store import InMemoryChallengeStore
from mailotp.infrastructure.memory.janitor import ChallengeJanitor
from mailotp.infrastructure.redis_cache.challenge_store import RedisChallengeStore
from mailotp.infrastructure.redis_cache.pool import close_redis, get_redis
from mailotp.logging import setup_logging
from mailotp.presentation.api import api
from mailotp.presentation.errors import register_exception_handlers
from mailotp.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_challenge_store(settings: Settings) -> ChallengeStorePort:
    if settings.challenge_store == "memory":
        return InMemoryChallengeStore()
    return RedisChallengeStore(
        get_redis(),
        lock_timeout=settings.store_lock_timeout_seconds,
        blocking_timeout=settings.store_lock_timeout_seconds,
    )


def build_otp_service(
    settings: Settings, *, store: ChallengeStorePort, email: EmailPort
) -> OtpService:
    return OtpService(
        store=store,
        email=email,
        throttle=ThrottlePolicy(
            cooldown_seconds=settings.resend_cooldown_seconds,
            max_attempts=settings.code_attempts,
        ),
        code_length=settings.code_length,
        code_ttl_seconds=settings.code_ttl_seconds,
        delivery_timeout_seconds=settings.delivery_timeout_seconds,
        pepper=settings.code_pepper.encode("utf-8"),
        email_subject=settings.email_subject,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    pool = get_pool()
    if pool.closed:
        await pool.open()

    # the adapter borrows the shared client and must not close it
    client = await open_http_client(timeout=settings.delivery_timeout_seconds)
    email_adapter = HttpSmtpEmailAdapter(
        settings.smtp_base_url,
        client=client,
        send_path=settings.smtp_send_path,
        sender=settings.email_from,
    )
    store = build_challenge_store(settings)
    app.state.otp_service = build_otp_service(settings, store=store, email=email_adapter)

    janitor_task = None
    if isinstance(store, InMemoryChallengeStore):
        janitor = ChallengeJanitor(store=store, interval=settings.janitor_interval_seconds)
        janitor_task = asyncio.create_task(janitor.run_forever(), name="challenge-janitor")
    logger.info(
        "otp api started",
        extra={"challenge_store": settings.challenge_store, "app_env": settings.app_env},
    )

    try:
        yield
    finally:
        if janitor_task is not None:
            janitor_task.cancel()
            with suppress(asyncio.CancelledError):
                await janitor_task
        await email_adapter.aclose()
        await close_http_client()
        await close_redis()
        await close_pool()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level, app_env=settings.app_env)
    app = FastAPI(title="Email OTP API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.include_router(api)
    register_exception_handlers(app)
    return app


app = create_app()
