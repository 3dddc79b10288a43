import io
import json
import logging

import pytest

from mailotp.logging import DropSecretsFilter, UTCJsonFormatter, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_secret_extras_never_reach_the_output():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(UTCJsonFormatter("%(levelname)s %(message)s"))
    handler.addFilter(DropSecretsFilter())
    log = logging.getLogger("tests.secrets")
    log.addHandler(handler)
    log.propagate = False
    try:
        log.warning("otp issued", extra={"identity": "a@x.com", "code": "482913", "digest": "abc"})
    finally:
        log.removeHandler(handler)

    line = json.loads(stream.getvalue())
    assert line["identity"] == "a@x.com"
    assert "code" not in line and "digest" not in line
    assert "482913" not in stream.getvalue()


def test_setup_logging_installs_one_json_handler(restore_root_logger):
    setup_logging("debug", app_env="test")
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    (handler,) = root.handlers
    assert isinstance(handler.formatter, UTCJsonFormatter)
    assert any(isinstance(f, DropSecretsFilter) for f in handler.filters)
    assert logging.getLogger("httpx").level == logging.WARNING
