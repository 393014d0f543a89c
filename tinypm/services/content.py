"""Content block helpers: per-type field selection and link URL clean-up."""
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from tinypm.models.content import ContentType
from tinypm.schemas.content import ContentCreate, ContentUpdate

logger = logging.getLogger("tinypm.content")

DEFAULT_LINK_EMOJI = "\U0001F517"
ALLOWED_SCHEMES = ("http", "https", "mailto", "tel")


def normalize_url(raw: Optional[str]) -> str:
    """Trim, default to https:// and reject anything that does not parse as a link."""
    url = (raw or "").strip()
    if not url:
        return ""
    if "://" not in url and not url.startswith(("mailto:", "tel:")):
        url = f"https://{url}"
    parsed = urlparse(url)
    if parsed.scheme not in ALLOWED_SCHEMES:
        return ""
    if parsed.scheme in ("http", "https") and not parsed.netloc:
        return ""
    return url


def fields_for_create(body: ContentCreate) -> Dict[str, Any]:
    """Only the fields that make sense for the block type are stored."""
    data: Dict[str, Any] = {"type": body.type.value, "enabled": body.enabled}
    if body.type == ContentType.LINK:
        data["title"] = body.title or ""
        data["url"] = normalize_url(body.url)
        data["emoji"] = body.emoji or DEFAULT_LINK_EMOJI
    elif body.type == ContentType.TITLE:
        data["title"] = body.title or ""
        data["emoji"] = body.emoji
    elif body.type == ContentType.TEXT:
        data["text"] = body.text or ""
    return data


def fields_for_update(body: ContentUpdate, content_type: str) -> Dict[str, Any]:
    data = {
        k: v for k, v in body.model_dump(exclude_unset=True).items()
        if not (v is None and k in ("enabled", "order"))
    }
    if "url" in data:
        if content_type != ContentType.LINK.value:
            data.pop("url")
        else:
            data["url"] = normalize_url(data["url"])
    return data
