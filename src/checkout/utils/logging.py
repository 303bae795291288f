"""Logging for the checkout engine.

structlog renders on top of stdlib logging. Every event passes through
``redact_secrets`` before rendering: payment callbacks, gateway credentials and
authorization headers must never reach a log line, however they were bound.
The API binds each request and its authenticated caller into the context,
so every line logged while serving a request says who it was for.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

import structlog

REDACTED = "[redacted]"

SENSITIVE_KEYS = frozenset(
    {
        "signature",
        "gateway_signature",
        "razorpay_signature",
        "key_secret",
        "gateway_key_secret",
        "webhook_secret",
        "authorization",
        "password",
        "card_number",
        "cvv",
    }
)

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Gateway HTTP calls and Protean internals are chatty at DEBUG
_QUIET_LOGGERS = ("urllib3", "asyncio", "protean")


def _environment() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level(environment: str | None = None) -> str:
    """``LOG_LEVEL`` if set, else the default for the environment."""
    return os.getenv("LOG_LEVEL", _LEVELS.get(environment or _environment(), "INFO")).upper()


def _redact(value):
    if isinstance(value, dict):
        return {k: REDACTED if str(k).lower() in SENSITIVE_KEYS else _redact(v) for k, v in value.items()}
    if type(value) in (list, tuple):
        return type(value)(_redact(v) for v in value)
    return value


def redact_secrets(logger, method_name, event_dict):
    """structlog processor masking sensitive keys, nested ones included."""
    return _redact(event_dict)


def _rotating(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(environment: str, log_dir: str | Path | None = None) -> None:
    """Console output always; rotating files outside tests.

    ``shopcheckout_error.log`` collects errors only, so failed gateway calls
    and reconciliation problems can be read without the rest.
    """
    log_level = get_log_level(environment)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if environment != "test":
        directory = Path(os.getenv("LOG_DIR") or log_dir or "logs")
        directory.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_rotating(directory / "shopcheckout.log", log_level))
        root_logger.addHandler(_rotating(directory / "shopcheckout_error.log", logging.ERROR))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_processors(environment: str) -> list:
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=environment == "development",
                exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
            )
        )
    return processors


def configure_logging(log_dir: str | Path | None = None) -> None:
    environment = _environment()
    setup_stdlib_logging(environment, log_dir)
    structlog.configure(
        processors=build_processors(environment),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(method: str, path: str) -> None:
    """Start a fresh logging context for the request being served."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(http_method=method, path=path)


def bind_caller(owner=None, admin_id: str | None = None) -> None:
    """Add the authenticated caller to the current logging context."""
    if owner is not None:
        structlog.contextvars.bind_contextvars(owner_kind=owner.kind, owner_id=owner.id)
    if admin_id:
        structlog.contextvars.bind_contextvars(admin_id=admin_id)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
