"""
Smoke-check a deployment's custom domain plumbing:

  1. the customdomains table is reachable
  2. the root domain resolves
  3. the reverse-proxy check endpoint answers

Usage: python scripts/verify_domain_setup.py [BASE_URL]
"""
import logging
import sys

import dns.exception
import dns.resolver
import httpx
from sqlalchemy.exc import SQLAlchemyError

from tinypm.config import settings
from tinypm.db.session import Database
from tinypm.models import CustomDomain

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def check_schema(database: Database) -> bool:
    db = database.SessionLocal()
    try:
        found = db.query(CustomDomain).first()
    except SQLAlchemyError as e:
        logger.error("❌ Database schema issue: %s", e)
        return False
    finally:
        db.close()
    logger.info("✅ Database schema verified (%s)", "custom domain found" if found else "no custom domains yet")
    return True


def check_dns(root_domain: str) -> bool:
    try:
        answer = dns.resolver.resolve(root_domain, "A", lifetime=settings.DNS_TIMEOUT_SECONDS)
    except dns.exception.DNSException as e:
        logger.error("❌ DNS resolution issue for %s: %s", root_domain, e)
        return False
    logger.info("✅ %s resolves to %s", root_domain, ", ".join(r.to_text() for r in answer))
    return True


def check_verify_endpoint(base_url: str) -> bool:
    url = f"{base_url.rstrip('/')}{settings.API_PREFIX}/domains/verify"
    try:
        response = httpx.get(url, params={"domain": settings.root_domain}, timeout=10.0)
    except httpx.HTTPError as e:
        logger.error("❌ Domain verification endpoint issue: %s", e)
        return False
    ok = response.status_code == 200 and response.text == "yes"
    logger.info("%s %s answered %d %r", "✅" if ok else "🚫", url, response.status_code, response.text)
    return ok


def main() -> int:
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    logger.info("🔍 Verifying domain setup...")
    database = Database.from_settings(settings)
    try:
        results = [
            check_schema(database),
            check_dns(settings.root_domain),
            check_verify_endpoint(base_url),
        ]
    finally:
        database.dispose()
    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
