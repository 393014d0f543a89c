from typing import Any, Dict, Optional, Union
from uuid import UUID
from sqlalchemy.orm import Session
from tinypm.crud.ids import parse_id
from tinypm.models.user import User


def get(db: Session, user_id: Union[str, UUID]) -> Optional[User]:
    uid = parse_id(user_id)
    if uid is None:
        return None
    return db.query(User).filter(User.id == uid).first()


def get_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username.lower()).first()


def set_username(db: Session, *, user: User, username: str) -> User:
    user.username = username.lower()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: Session, *, user: User, data: Dict[str, Any]) -> User:
    for field, value in data.items():
        setattr(user, field, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
