"""
Custom Domain Proxy Middleware

Serves a user's public page under their verified custom domain by rewriting
the request path to ``/{username}/{original path}`` before routing.

  - platform host (root domain / subdomains, dev hosts) → untouched
  - bypass prefixes (/api, /health, ...)                → untouched
  - ACTIVE custom domain                                → rewritten
  - unknown host                                        → 404, never passed through
  - domain store unavailable                            → 503 (fail closed)

The store is read on every request; DNS is never queried here.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import quote

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from tinypm.config import Settings, settings as default_settings
from tinypm.logging_config import custom_domain_ctx
from tinypm.middleware.metrics import CUSTOM_DOMAIN_REQUESTS

logger = logging.getLogger("tinypm.proxy")

OwnerLookup = Callable[[str], Optional[str]]

TRACKING_HEADERS = (b"x-forwarded-host", b"x-custom-domain", b"x-original-path")


class ProxyAction(str, enum.Enum):
    PASS_THROUGH = "pass_through"
    REWRITE = "rewrite"
    NOT_CONFIGURED = "not_configured"
    UNAVAILABLE = "unavailable"
    INVALID = "invalid"


@dataclass
class ProxyDecision:
    action: ProxyAction
    hostname: str = ""
    path: Optional[str] = None
    username: Optional[str] = None


def clean_hostname(host: str) -> str:
    """Strip the port and the root-label dot, normalize case."""
    host = host.strip().lower()
    if host.startswith("["):  # IPv6 literal
        return host.split("]")[0] + "]"
    return host.split(":")[0].rstrip(".")


def is_bypass_path(path: str, prefixes: List[str]) -> bool:
    """Whole-segment match: ``/api`` covers ``/api`` and ``/api/...``, never ``/apiuser``."""
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def is_platform_or_dev_host(hostname: str, settings: Settings) -> bool:
    if settings.is_platform_host(hostname):
        return True
    return settings.is_development and hostname in settings.dev_hosts


def resolve_custom_domain(
    host: Optional[str],
    path: str,
    settings: Settings,
    lookup: OwnerLookup,
) -> ProxyDecision:
    if not host:
        return ProxyDecision(ProxyAction.INVALID)

    hostname = clean_hostname(host)
    if is_platform_or_dev_host(hostname, settings):
        return ProxyDecision(ProxyAction.PASS_THROUGH, hostname)

    if is_bypass_path(path, settings.proxy_bypass_prefixes):
        return ProxyDecision(ProxyAction.PASS_THROUGH, hostname)

    try:
        username = lookup(hostname)
    except Exception:
        logger.exception("Custom domain lookup failed for %s", hostname)
        return ProxyDecision(ProxyAction.UNAVAILABLE, hostname)

    if not username:
        return ProxyDecision(ProxyAction.NOT_CONFIGURED, hostname)

    rewritten = f"/{username}/{path.lstrip('/')}"
    return ProxyDecision(ProxyAction.REWRITE, hostname, path=rewritten, username=username)


class CustomDomainMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, lookup: OwnerLookup, settings: Optional[Settings] = None):
        super().__init__(app)
        self.lookup = lookup
        self.settings = settings or default_settings

    async def dispatch(self, request: Request, call_next) -> Response:
        host = request.headers.get("host", "")
        original_path = request.url.path

        decision = await run_in_threadpool(
            resolve_custom_domain, host, original_path, self.settings, self.lookup
        )

        if decision.action == ProxyAction.PASS_THROUGH:
            return await call_next(request)

        if decision.action == ProxyAction.INVALID:
            return PlainTextResponse("Invalid request", status_code=400)

        if decision.action == ProxyAction.NOT_CONFIGURED:
            CUSTOM_DOMAIN_REQUESTS.labels(decision="not_configured").inc()
            logger.warning("Domain not found or inactive: %s", decision.hostname)
            return PlainTextResponse("Domain not configured", status_code=404)

        if decision.action == ProxyAction.UNAVAILABLE:
            CUSTOM_DOMAIN_REQUESTS.labels(decision="unavailable").inc()
            return PlainTextResponse("Service unavailable", status_code=503)

        CUSTOM_DOMAIN_REQUESTS.labels(decision="rewrite").inc()
        logger.info(
            "Rewriting %s%s → %s (user %s)",
            decision.hostname, original_path, decision.path, decision.username,
        )

        scope = request.scope
        scope["path"] = decision.path
        scope["raw_path"] = quote(decision.path).encode("ascii")
        headers = [(k, v) for k, v in scope["headers"] if k not in TRACKING_HEADERS]
        headers.extend([
            (b"x-forwarded-host", host.encode("latin-1")),
            (b"x-custom-domain", decision.hostname.encode("latin-1")),
            (b"x-original-path", quote(original_path).encode("ascii")),
        ])
        scope["headers"] = headers
        request.state.custom_domain = decision.hostname
        custom_domain_ctx.set(decision.hostname)

        return await call_next(request)
