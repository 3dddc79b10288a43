import logging
import sys
import time

from pythonjsonlogger.json import JsonFormatter

# never serialised even if passed through `extra=`
SECRET_FIELDS = frozenset({"code", "password", "password_hash", "digest", "salt", "pepper"})


class UTCJsonFormatter(JsonFormatter):
    converter = time.gmtime


class DropSecretsFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for name in SECRET_FIELDS.intersection(record.__dict__):
            delattr(record, name)
        return True


def setup_logging(level: str = "INFO", *, app_env: str = "dev") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        UTCJsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger"},
            static_fields={"service": "mailotp", "env": app_env},
        )
    )
    handler.addFilter(DropSecretsFilter())
    root.addHandler(handler)

    logging.getLogger("httpx").setLevel("WARNING")
    logging.getLogger("psycopg.pool").setLevel("WARNING")
