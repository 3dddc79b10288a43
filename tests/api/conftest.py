import pytest
from fastapi.testclient import TestClient

from mailotp.main import create_app
from mailotp.presentation.dependencies import (
    get_hash_password,
    get_otp_service,
    get_uow,
)


@pytest.fixture()
def app_and_deps(uow, otp_service):
    app = create_app()

    app.dependency_overrides[get_uow] = lambda: uow
    app.dependency_overrides[get_otp_service] = lambda: otp_service
    app.dependency_overrides[get_hash_password] = lambda: (lambda plain: "hashed-" + plain)

    try:
        yield app, uow, otp_service
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app_and_deps):
    app, _, _ = app_and_deps
    return TestClient(app, raise_server_exceptions=False)


REGISTER = {"name": "Jeremy", "email": "jeremy@example.com", "password": "s3cret"}
