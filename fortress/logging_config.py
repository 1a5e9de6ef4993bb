from __future__ import annotations

import logging
import re
from typing import Iterable

from flask import Flask

VERBOSE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d %(message)s"
COMPACT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s %(message)s"

# Applied in order; bearer credentials before generic key=value secrets
_REDACTIONS = (
    (re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+"), "[REDACTED_EMAIL]"),
    (re.compile(r"\bBearer\s+[\w\-.=:+/]+", re.IGNORECASE), "Bearer [REDACTED]"),
    (
        re.compile(r"\b(token|api[_-]?key|secret|password|authorization)\s*[:=]\s*[^\s,;]+", re.IGNORECASE),
        r"\1=[REDACTED]",
    ),
)
QUIET_LOGGERS = ("werkzeug", "flask_limiter", "sqlalchemy.engine", "alembic.runtime.migration", "urllib3")


def redact(message: str) -> str:
    """Mask email addresses, bearer tokens and credential-looking pairs."""
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


class PiiRedactionFilter(logging.Filter):
    """Rewrites the formatted message; import logs carry user emails and API tokens."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            record.msg = redact(record.getMessage())
            record.args = ()
        except Exception:  # pragma: no cover - keep the record even if formatting fails
            pass
        return True


def configure_logging(app: Flask) -> None:
    level = _coerce_level(app.config.get("LOG_LEVEL") or ("DEBUG" if app.debug else "INFO"))
    root = logging.getLogger()
    root.setLevel(level)
    app.logger.setLevel(level)
    logging.getLogger("fortress").setLevel(level)

    if level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    if not root.handlers:
        root.addHandler(logging.StreamHandler())

    verbose = app.debug or app.config.get("ENV") != "production"
    formatter = logging.Formatter(VERBOSE_FORMAT if verbose else COMPACT_FORMAT)
    redact_pii = bool(app.config.get("LOG_REDACT_PII", True))
    _apply_formatter([*root.handlers, *app.logger.handlers], formatter, redact_pii)


def _apply_formatter(handlers: Iterable[logging.Handler], formatter: logging.Formatter, redact_pii: bool) -> None:
    for handler in handlers:
        handler.setFormatter(formatter)
        if redact_pii and not any(isinstance(f, PiiRedactionFilter) for f in handler.filters):
            handler.addFilter(PiiRedactionFilter())


def _coerce_level(raw_level) -> int:
    if isinstance(raw_level, int):
        return raw_level
    if isinstance(raw_level, str):
        level = logging.getLevelName(raw_level.strip().upper())
        if isinstance(level, int):
            return level
    return logging.INFO
