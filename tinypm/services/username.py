"""
Username rules for public profile paths (``tiny.pm/<username>``).

A username doubles as the first path segment of the profile route and the
rewrite target of custom domains, so anything that collides with a platform
route or looks like staff impersonation is refused.
"""
import re
from typing import Optional

from sqlalchemy.orm import Session

from tinypm.crud import crud_user

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]{1,18}[a-zA-Z0-9]$")
CONSECUTIVE_SPECIALS = re.compile(r"[_-]{2,}")

FORMAT_ERROR = (
    "Username must be 3-20 characters long, start and end with a letter or number, "
    "and can only contain letters, numbers, underscores, and hyphens"
)

RESERVED_USERNAMES = frozenset({
    # platform routes
    "admin", "administrator", "root", "settings", "config", "configuration",
    "login", "logout", "signin", "signout", "signup", "register", "auth",
    "api", "graphql", "rest", "dashboard", "account", "profile",
    "user", "users", "member", "members", "health", "metrics", "docs",
    "redoc", "openapi", "documentation", "guide",
    "subscription", "subscriptions", "subscribe", "billing", "payment",
    "support", "help", "contact", "terms", "privacy", "legal",
    "about", "home", "index",
    # staff and brand
    "mod", "moderator", "staff", "team", "official", "verified", "security",
    "info", "news", "announcement", "service", "bot", "system",
    "admin-team", "mod-team", "support-team", "help-desk", "official-support",
    "verification", "verify", "authenticated",
    "tiny", "tinypm", "tiny-pm", "tiny_pm",
})

BLOCKED_WORDS = ("scam", "phishing", "warez", "crack", "hack", "leaked", "dump")

IMPERSONATION_PATTERNS = (
    re.compile(r"^(official|real|true|actual)_.+"),
    re.compile(r".+_(official|support|team)"),
    re.compile(r"[0-9]+_(admin|mod|staff)"),
)


def is_inappropriate(username: str) -> bool:
    normalized = username.lower()
    if any(word in normalized for word in BLOCKED_WORDS):
        return True
    return any(pattern.search(normalized) for pattern in IMPERSONATION_PATTERNS)


def username_error(db: Session, username: Optional[str]) -> Optional[str]:
    """Return the reason ``username`` cannot be claimed, or ``None`` if it is free."""
    if not username:
        return "Username is required"
    if not USERNAME_PATTERN.match(username):
        return FORMAT_ERROR
    if CONSECUTIVE_SPECIALS.search(username):
        return "Username cannot contain consecutive special characters"
    if username.lower() in RESERVED_USERNAMES:
        return "This username is reserved"
    if is_inappropriate(username):
        return "This username contains inappropriate content"
    if crud_user.get_by_username(db, username) is not None:
        return "Username is already taken"
    return None
