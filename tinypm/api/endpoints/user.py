import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from tinypm.api import deps
from tinypm.crud import crud_user
from tinypm.models.user import User
from tinypm.schemas.user import UserEnvelope, UserInfo, UserUpdate

router = APIRouter()
logger = logging.getLogger("tinypm.user")


@router.get("/user", response_model=UserEnvelope)
def read_user(current_user: User = Depends(deps.get_current_user)) -> Any:
    return UserEnvelope(user=UserInfo.model_validate(current_user))


@router.patch("/user", response_model=UserEnvelope)
def update_user(
    *,
    db: Session = Depends(deps.get_db),
    body: UserUpdate,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """Edit the public page header (name, title, description)."""
    data = body.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid fields to update")
    user = crud_user.update_profile(db, user=current_user, data=data)
    logger.info("User %s updated %s", user.id, ", ".join(sorted(data)))
    return UserEnvelope(user=UserInfo.model_validate(user))
