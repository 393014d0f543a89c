"""HTTP tests for /api/domains and the reverse-proxy check."""
import uuid

import pytest
from httpx import AsyncClient

from tinypm.models import CustomDomain, DomainStatus, SubscriptionStatus
from tests.conftest import auth_headers, create_user

DOMAINS_URL = "/api/domains"


@pytest.fixture
def owner(db):
    return create_user(db, username="alice")


@pytest.fixture
def headers(owner):
    return auth_headers(owner)


async def _add(client: AsyncClient, headers: dict, domain: str = "links.example.com") -> dict:
    resp = await client.post(DOMAINS_URL, json={"domain": domain}, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient):
    resp = await client.post(DOMAINS_URL, json={"domain": "links.example.com"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}

    resp = await client.get(DOMAINS_URL, headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_add_domain(client: AsyncClient, headers):
    body = await _add(client, headers)

    assert body["domain"] == "links.example.com"
    assert body["status"] == "PENDING"
    assert body["verificationAttempts"] == 0
    assert body["remainingAttempts"] == 5
    assert body["dnsRecord"] == {"type": "CNAME", "name": "links", "value": "tiny.pm"}
    assert body["verificationCode"]


@pytest.mark.asyncio
@pytest.mark.parametrize("domain, code", [
    ("not a domain", "INVALID_FORMAT"),
    ("alice.tiny.pm", "RESERVED_DOMAIN"),
])
async def test_add_domain_validation_errors(client: AsyncClient, headers, domain, code):
    resp = await client.post(DOMAINS_URL, json={"domain": domain}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == code
    assert resp.json()["error"]


@pytest.mark.asyncio
async def test_add_domain_duplicate(client: AsyncClient, headers, db):
    await _add(client, headers)
    other = create_user(db)
    resp = await client.post(DOMAINS_URL, json={"domain": "links.example.com"}, headers=auth_headers(other))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Domain already registered", "code": "ALREADY_EXISTS"}


@pytest.mark.asyncio
async def test_add_domain_without_subscription(client: AsyncClient, db):
    user = create_user(db, subscription_status=SubscriptionStatus.CANCELED)
    resp = await client.post(DOMAINS_URL, json={"domain": "links.example.com"}, headers=auth_headers(user))
    assert resp.status_code == 400
    assert resp.json()["code"] == "SUBSCRIPTION_REQUIRED"


@pytest.mark.asyncio
async def test_add_domain_malformed_body(client: AsyncClient, headers):
    resp = await client.post(DOMAINS_URL, json={}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request body"


@pytest.mark.asyncio
async def test_list_domains_is_owner_scoped(client: AsyncClient, headers, db):
    await _add(client, headers, "a.example.com")
    await _add(client, headers, "b.example.com")
    other = create_user(db)
    await _add(client, auth_headers(other), "c.example.com")

    resp = await client.get(DOMAINS_URL, headers=headers)

    assert resp.status_code == 200
    assert sorted(d["domain"] for d in resp.json()["domains"]) == ["a.example.com", "b.example.com"]


@pytest.mark.asyncio
async def test_verify_failure_returns_failed_record_then_cooldown(client: AsyncClient, headers):
    record = await _add(client, headers)

    resp = await client.post(f"{DOMAINS_URL}/{record['id']}/verify", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "FAILED"
    assert body["verificationAttempts"] == 1
    assert body["remainingAttempts"] == 4
    assert body["errorMessage"].startswith("No DNS records found")

    resp = await client.post(f"{DOMAINS_URL}/{record['id']}/verify", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "COOLDOWN"
    assert resp.json()["remainingSeconds"] == 300
    assert resp.headers["retry-after"] == "300"


@pytest.mark.asyncio
async def test_verify_mismatch_returns_failed_record(client: AsyncClient, headers, dns):
    record = await _add(client, headers)
    dns.point("links.example.com", "someone-else.net")

    resp = await client.post(f"{DOMAINS_URL}/{record['id']}/verify", headers=headers)

    assert resp.status_code == 200
    assert resp.json()["status"] == "FAILED"
    assert resp.json()["errorMessage"] == "CNAME record should point to tiny.pm"


@pytest.mark.asyncio
async def test_verify_success_then_serves_custom_domain(client: AsyncClient, headers, dns, clock):
    record = await _add(client, headers)
    verify_url = f"{DOMAINS_URL}/{record['id']}/verify"

    resp = await client.post(verify_url, headers=headers)
    assert resp.json()["status"] == "FAILED"

    clock.advance(300)
    dns.point("links.example.com", "tiny.pm.")
    resp = await client.post(verify_url, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "ACTIVE"
    assert resp.json()["verifiedAt"] is not None

    check = await client.get(f"{DOMAINS_URL}/verify", params={"domain": "links.example.com"})
    assert check.status_code == 200
    assert check.text == "yes"

    page = await client.get("/", headers={"host": "links.example.com"})
    assert page.status_code == 200
    assert page.json()["username"] == "alice"


@pytest.mark.asyncio
async def test_verify_max_attempts(client: AsyncClient, headers, clock):
    record = await _add(client, headers)
    verify_url = f"{DOMAINS_URL}/{record['id']}/verify"
    for _ in range(5):
        resp = await client.post(verify_url, headers=headers)
        assert resp.status_code == 200
        clock.advance(300)

    resp = await client.post(verify_url, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Maximum verification attempts exceeded", "code": "MAX_ATTEMPTS"}


@pytest.mark.asyncio
async def test_verify_not_found(client: AsyncClient, headers, db):
    resp = await client.post(f"{DOMAINS_URL}/{uuid.uuid4()}/verify", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"

    other = create_user(db)
    record = await _add(client, auth_headers(other))
    resp = await client.post(f"{DOMAINS_URL}/{record['id']}/verify", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_domain(client: AsyncClient, headers, db):
    record = await _add(client, headers)
    other = create_user(db)

    resp = await client.delete(f"{DOMAINS_URL}/{record['id']}", headers=auth_headers(other))
    assert resp.status_code == 404

    resp = await client.delete(f"{DOMAINS_URL}/{record['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    resp = await client.delete(f"{DOMAINS_URL}/{record['id']}", headers=headers)
    assert resp.status_code == 404


# --- Reverse-proxy check ---

@pytest.mark.asyncio
async def test_check_platform_domain_is_always_allowed(client: AsyncClient):
    for domain in ("tiny.pm", "alice.tiny.pm"):
        resp = await client.get(f"{DOMAINS_URL}/verify", params={"domain": domain})
        assert resp.status_code == 200
        assert resp.text == "yes"

    # Falls back to the Host header
    resp = await client.get(f"{DOMAINS_URL}/verify")
    assert resp.text == "yes"


@pytest.mark.asyncio
async def test_check_unverified_domain_is_refused(client: AsyncClient, headers):
    await _add(client, headers)
    resp = await client.get(f"{DOMAINS_URL}/verify", params={"domain": "links.example.com"})
    assert resp.status_code == 404
    assert resp.text == "no"

    resp = await client.get(f"{DOMAINS_URL}/verify", params={"domain": "unknown.example.org"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_check_reachable_on_custom_host(client: AsyncClient, owner, db):
    db.add(CustomDomain(
        user_id=owner.id,
        domain="links.example.com",
        status=DomainStatus.ACTIVE.value,
        verification_code=str(uuid.uuid4()),
        cname_target="tiny.pm",
    ))
    db.commit()

    resp = await client.get(f"{DOMAINS_URL}/verify", headers={"host": "links.example.com"})
    assert resp.status_code == 200
    assert resp.text == "yes"


@pytest.mark.asyncio
async def test_poller_drives_verification_to_active(app, headers, dns):
    from httpx import ASGITransport

    from tinypm.services.domain_poller import DomainVerificationPoller, PollOutcome

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://tiny.pm", headers=headers) as client:
        record = await _add(client, {})
        dns.point("links.example.com", "tiny.pm")

        result = await DomainVerificationPoller(client, record["id"], interval=0, max_rounds=3).run()

    assert result.outcome == PollOutcome.ACTIVE
    assert result.rounds == 1
    assert result.record["domain"] == "links.example.com"
