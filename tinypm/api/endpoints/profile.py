"""
Public profile pages.

Served for ``tiny.pm/<username>`` and, after the custom-domain rewrite, for
``https://links.example.com/<anything>``.
"""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from tinypm.api import deps
from tinypm.crud import crud_content, crud_user
from tinypm.schemas.content import ContentInfo, PublicProfile

router = APIRouter()


def _profile(db: Session, username: str) -> PublicProfile:
    user = crud_user.get_by_username(db, username)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return PublicProfile(
        username=user.username,
        name=user.name,
        image=user.image,
        page_title=user.page_title,
        page_desc=user.page_desc,
        content=[ContentInfo.model_validate(c) for c in crud_content.list_public(db, user.id)],
    )


@router.get("/{username}", response_model=PublicProfile)
def read_profile(username: str, db: Session = Depends(deps.get_db)) -> Any:
    return _profile(db, username)


@router.get("/{username}/{subpath:path}", response_model=PublicProfile)
def read_profile_path(username: str, subpath: str, db: Session = Depends(deps.get_db)) -> Any:
    # Single-page profiles: every sub path renders the same page.
    return _profile(db, username)
