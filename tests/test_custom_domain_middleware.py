"""Custom domain proxy: routing decision and ASGI path rewrite."""
import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route

from tinypm.config import Settings
from tinypm.middleware.custom_domain import (
    CustomDomainMiddleware,
    ProxyAction,
    clean_hostname,
    resolve_custom_domain,
)

DEV = Settings(_env_file=None, APP_ENV="development", ROOT_DOMAIN="tiny.pm")
NON_DEV = Settings(_env_file=None, APP_ENV="test", ROOT_DOMAIN="tiny.pm")

DOMAINS = {"links.example.com": "alice"}


class _Lookup:
    def __init__(self, table=None, error=None):
        self.table = DOMAINS if table is None else table
        self.error = error
        self.calls = []

    def __call__(self, hostname):
        self.calls.append(hostname)
        if self.error is not None:
            raise self.error
        return self.table.get(hostname)


# --- Decision ---

@pytest.mark.parametrize("host, expected", [
    ("Links.Example.com:443", "links.example.com"),
    ("tiny.pm", "tiny.pm"),
    ("[::1]:8000", "[::1]"),
    ("links.example.com.", "links.example.com"),
    ("Links.Example.com.:8443", "links.example.com"),
])
def test_clean_hostname(host, expected):
    assert clean_hostname(host) == expected


@pytest.mark.parametrize("host", ["tiny.pm", "alice.tiny.pm", "TINY.PM:8000"])
def test_platform_hosts_pass_through(host):
    lookup = _Lookup()
    decision = resolve_custom_domain(host, "/alice", NON_DEV, lookup)
    assert decision.action == ProxyAction.PASS_THROUGH
    assert lookup.calls == []


def test_dev_hosts_only_honored_in_development():
    assert resolve_custom_domain("localhost:8000", "/", DEV, _Lookup()).action == ProxyAction.PASS_THROUGH
    assert resolve_custom_domain("localhost:8000", "/", NON_DEV, _Lookup()).action == ProxyAction.NOT_CONFIGURED


@pytest.mark.parametrize("path", ["/api/domains/verify", "/health", "/api/content/x/click"])
def test_bypass_prefixes_pass_through_on_custom_hosts(path):
    lookup = _Lookup()
    decision = resolve_custom_domain("unknown.example.org", path, NON_DEV, lookup)
    assert decision.action == ProxyAction.PASS_THROUGH
    assert lookup.calls == []


@pytest.mark.parametrize("path", ["/apiuser", "/healthnut", "/docsmith", "/metricsfan", "/openapi.jsonx"])
def test_lookalike_paths_are_not_bypassed(path):
    lookup = _Lookup()
    decision = resolve_custom_domain("unknown.example.org", path, NON_DEV, lookup)
    assert decision.action == ProxyAction.NOT_CONFIGURED
    assert lookup.calls == ["unknown.example.org"]


@pytest.mark.parametrize("path", ["/api", "/docs", "/docs/oauth2-redirect", "/openapi.json"])
def test_bypass_matches_whole_segments(path):
    assert resolve_custom_domain("unknown.example.org", path, NON_DEV, _Lookup()).action == ProxyAction.PASS_THROUGH


def test_fully_qualified_host_resolves():
    lookup = _Lookup()
    decision = resolve_custom_domain("links.example.com.", "/", NON_DEV, lookup)
    assert decision.action == ProxyAction.REWRITE
    assert lookup.calls == ["links.example.com"]
    assert resolve_custom_domain("tiny.pm.", "/", NON_DEV, _Lookup()).action == ProxyAction.PASS_THROUGH


@pytest.mark.parametrize("path, rewritten", [
    ("/", "/alice/"),
    ("/foo", "/alice/foo"),
    ("/foo/bar", "/alice/foo/bar"),
])
def test_active_domain_rewrites(path, rewritten):
    decision = resolve_custom_domain("links.example.com", path, NON_DEV, _Lookup())
    assert decision.action == ProxyAction.REWRITE
    assert decision.path == rewritten
    assert decision.username == "alice"


def test_unknown_domain_is_not_configured():
    decision = resolve_custom_domain("other.example.com", "/", NON_DEV, _Lookup())
    assert decision.action == ProxyAction.NOT_CONFIGURED


def test_store_failure_is_unavailable():
    decision = resolve_custom_domain("links.example.com", "/", NON_DEV, _Lookup(error=RuntimeError("db down")))
    assert decision.action == ProxyAction.UNAVAILABLE


def test_missing_host_is_invalid():
    assert resolve_custom_domain("", "/", NON_DEV, _Lookup()).action == ProxyAction.INVALID


# --- Middleware ---

async def _echo(request):
    return JSONResponse({
        "path": request.url.path,
        "query": request.url.query,
        "forwardedHost": request.headers.get("x-forwarded-host"),
        "customDomain": request.headers.get("x-custom-domain"),
        "originalPath": request.headers.get("x-original-path"),
        "stateDomain": getattr(request.state, "custom_domain", None),
    })


def _client(host: str, lookup=None) -> AsyncClient:
    app = Starlette(routes=[Route("/{rest:path}", _echo, methods=["GET", "POST"])])
    app.add_middleware(CustomDomainMiddleware, lookup=lookup or _Lookup(), settings=NON_DEV)
    return AsyncClient(transport=ASGITransport(app=app), base_url=f"http://{host}")


@pytest.mark.asyncio
async def test_rewrite_preserves_query_and_adds_headers():
    async with _client("links.example.com") as client:
        resp = await client.get("/foo", params={"q": "1"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["path"] == "/alice/foo"
    assert body["query"] == "q=1"
    assert body["forwardedHost"] == "links.example.com"
    assert body["customDomain"] == "links.example.com"
    assert body["originalPath"] == "/foo"
    assert body["stateDomain"] == "links.example.com"


@pytest.mark.asyncio
async def test_platform_request_untouched():
    async with _client("tiny.pm") as client:
        resp = await client.get("/alice")
    assert resp.json()["path"] == "/alice"
    assert resp.json()["customDomain"] is None


@pytest.mark.asyncio
async def test_unknown_domain_gets_404():
    async with _client("nobody.example.com") as client:
        resp = await client.get("/")
    assert resp.status_code == 404
    assert resp.text == "Domain not configured"


@pytest.mark.asyncio
async def test_lookup_failure_gets_503():
    async with _client("links.example.com", _Lookup(error=RuntimeError("db down"))) as client:
        resp = await client.get("/")
    assert resp.status_code == 503
    assert resp.text == "Service unavailable"


@pytest.mark.asyncio
async def test_spoofed_tracking_headers_are_replaced():
    async with _client("links.example.com") as client:
        resp = await client.get("/", headers={"x-custom-domain": "evil.example.net"})
    assert resp.json()["customDomain"] == "links.example.com"
