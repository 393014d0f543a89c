import logging
from typing import Any, Iterable

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from tinypm.api import deps
from tinypm.crud import crud_content
from tinypm.models.content import ContentType
from tinypm.models.user import User
from tinypm.schemas.content import (
    ContentCreate,
    ContentInfo,
    ContentList,
    ContentReorder,
    ContentUpdate,
)
from tinypm.services.content import fields_for_create, fields_for_update

router = APIRouter()
logger = logging.getLogger("tinypm.content")


def _content_list(items: Iterable[Any]) -> ContentList:
    return ContentList(content=[ContentInfo.model_validate(c) for c in items])


@router.get("/content", response_model=ContentList)
def list_content(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    return _content_list(crud_content.list_for_owner(db, current_user.id))


@router.post("/content", response_model=ContentInfo)
def create_content(
    *,
    db: Session = Depends(deps.get_db),
    body: ContentCreate,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    data = fields_for_create(body)
    data["order"] = body.order if body.order is not None else crud_content.next_order(db, current_user.id)
    content = crud_content.create(db, owner_id=current_user.id, data=data)
    logger.info("Content %s (%s) created for user %s", content.id, content.type, current_user.id)
    return content


@router.put("/content/reorder", response_model=ContentList)
def reorder_content(
    *,
    db: Session = Depends(deps.get_db),
    body: ContentReorder,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Persist a drag-and-drop order.

    ``ids`` must name every block the caller owns exactly once.
    """
    owned = {c.id for c in crud_content.list_for_owner(db, current_user.id)}
    if len(body.ids) != len(set(body.ids)) or set(body.ids) != owned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reorder must list each of your content blocks exactly once",
        )
    return _content_list(crud_content.reorder(db, owner_id=current_user.id, ordered_ids=body.ids))


@router.patch("/content/{content_id}", response_model=ContentInfo)
def update_content(
    *,
    db: Session = Depends(deps.get_db),
    content_id: str,
    body: ContentUpdate,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    content = crud_content.get_for_owner(db, content_id, current_user.id)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return crud_content.update_fields(db, db_obj=content, data=fields_for_update(body, content.type))


@router.delete("/content/{content_id}")
def delete_content(
    *,
    db: Session = Depends(deps.get_db),
    content_id: str,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    content = crud_content.get_for_owner(db, content_id, current_user.id)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    crud_content.delete(db, db_obj=content)
    return {"success": True}


@router.post("/content/{content_id}/click", response_model=ContentInfo)
def track_click(
    *,
    db: Session = Depends(deps.get_db),
    content_id: str,
) -> Any:
    """Public: visitors of a profile page hit this when they follow a link."""
    content = crud_content.get(db, content_id)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    if content.type != ContentType.LINK.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only links can be clicked")
    return crud_content.increment_clicks(db, db_obj=content)
