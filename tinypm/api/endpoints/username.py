import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tinypm.api import deps
from tinypm.crud import crud_user
from tinypm.models.user import User
from tinypm.schemas.user import UserInfo, UsernameAvailability, UsernameRequest
from tinypm.services.username import username_error

router = APIRouter()
logger = logging.getLogger("tinypm.content")


@router.post("/username", response_model=UsernameAvailability, response_model_exclude_none=True)
def check_username(
    *,
    db: Session = Depends(deps.get_db),
    body: UsernameRequest,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """Availability check used while the owner types."""
    error = username_error(db, body.username.strip())
    return UsernameAvailability(available=error is None, error=error)


@router.post("/username/register", response_model=UserInfo)
def register_username(
    *,
    db: Session = Depends(deps.get_db),
    body: UsernameRequest,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    username = body.username.strip()
    error = username_error(db, username)
    if error is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    try:
        user = crud_user.set_username(db, user=current_user, username=username)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username is already taken")
    logger.info("User %s registered username %s", user.id, user.username)
    return user
