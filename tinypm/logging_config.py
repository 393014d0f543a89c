"""
Logging for the TinyPM backend.

All service loggers live under the ``tinypm`` namespace (``tinypm.domain``,
``tinypm.proxy``, ``tinypm.poller``, ...). Each line carries the request id,
the authenticated user id and, for requests served through a verified custom
domain, that hostname. Production and staging emit one JSON object per line;
development gets a compact human format.

In JSON output, bearer tokens, secrets and domain verification codes are
redacted and email addresses are partially masked.
"""

import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional, Union

from tinypm.config import Settings, settings

SERVICE_LOGGER = "tinypm"

# ── Per-request context ──
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
user_id_ctx: ContextVar[str] = ContextVar("user_id", default="-")
custom_domain_ctx: ContextVar[str] = ContextVar("custom_domain", default="-")


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


def log_context() -> Dict[str, str]:
    return {
        "request_id": request_id_ctx.get(),
        "user_id": user_id_ctx.get(),
        "custom_domain": custom_domain_ctx.get(),
    }


# ═══════════════════════════════════════════
#  Redaction
# ═══════════════════════════════════════════

_SECRET_KEYS = ("token", "secret", "api_key", "authorization", "verification_?code")

_SECRET_VALUE = re.compile(
    r'("?(?:' + "|".join(_SECRET_KEYS) + r')"?\s*[:=]\s*)"[^"]*"',
    re.I,
)
_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/-]+=*")
_EMAIL = re.compile(r"([a-zA-Z0-9._%+-]+)@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")


def _mask_email(match: re.Match) -> str:
    local, domain = match.group(1), match.group(2)
    if len(local) <= 2:
        return f"{local[0]}***@{domain}"
    return f"{local[0]}***{local[-1]}@{domain}"


def mask_pii(text: str) -> str:
    text = _SECRET_VALUE.sub(r'\1"***"', text)
    text = _BEARER.sub(r"\1***", text)
    return _EMAIL.sub(_mask_email, text)


# ═══════════════════════════════════════════
#  Formatters
# ═══════════════════════════════════════════

class JSONFormatter(logging.Formatter):
    """One JSON object per line; unset context fields are omitted."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S.000Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": mask_pii(record.getMessage()),
        }
        entry.update({k: v for k, v in log_context().items() if v != "-"})
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-14s | [%(request_id)s/%(user_id)s%(domain_tag)s] %(message)s"

    def format(self, record: logging.LogRecord) -> str:
        context = log_context()
        record.request_id = context["request_id"]
        record.user_id = context["user_id"]
        domain = context["custom_domain"]
        record.domain_tag = "" if domain == "-" else f" @{domain}"
        return super().format(record)


# ═══════════════════════════════════════════
#  Setup
# ═══════════════════════════════════════════

def _level_for(app_settings: Settings) -> Union[int, str]:
    if app_settings.LOG_LEVEL:
        return app_settings.LOG_LEVEL.upper()
    if app_settings.is_production or app_settings.is_staging:
        return logging.INFO
    return logging.DEBUG


def setup_logging(app_settings: Optional[Settings] = None) -> None:
    app_settings = app_settings or settings
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if app_settings.is_production or app_settings.is_staging:
        handler.setFormatter(JSONFormatter())
        root.setLevel(logging.INFO)
    else:
        handler.setFormatter(HumanFormatter(HumanFormatter.FORMAT, datefmt="%H:%M:%S"))
        root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    logging.getLogger(SERVICE_LOGGER).setLevel(_level_for(app_settings))

    # DNS lookups and the poller's httpx client are noisy at DEBUG
    for name in ("uvicorn.access", "httpcore", "httpx", "asyncio", "sqlalchemy.engine", "dns"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
