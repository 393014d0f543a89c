from typing import Any, Dict, List, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from tinypm.crud.ids import parse_id
from tinypm.models.content import Content


def get(db: Session, content_id: Union[str, UUID]) -> Optional[Content]:
    cid = parse_id(content_id)
    if cid is None:
        return None
    return db.query(Content).filter(Content.id == cid).first()


def get_for_owner(db: Session, content_id: Union[str, UUID], owner_id: UUID) -> Optional[Content]:
    cid = parse_id(content_id)
    if cid is None:
        return None
    return db.query(Content).filter(Content.id == cid, Content.user_id == owner_id).first()


def list_for_owner(db: Session, owner_id: UUID) -> List[Content]:
    return db.query(Content).filter(Content.user_id == owner_id).order_by(
        Content.order.asc(), Content.created_at.asc()
    ).all()


def list_public(db: Session, owner_id: UUID) -> List[Content]:
    return db.query(Content).filter(
        Content.user_id == owner_id, Content.enabled.is_(True)
    ).order_by(Content.order.asc(), Content.created_at.asc()).all()


def next_order(db: Session, owner_id: UUID) -> int:
    current = db.query(func.max(Content.order)).filter(Content.user_id == owner_id).scalar()
    return 0 if current is None else current + 1


def create(db: Session, *, owner_id: UUID, data: Dict[str, Any]) -> Content:
    db_obj = Content(user_id=owner_id, **data)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update_fields(db: Session, *, db_obj: Content, data: Dict[str, Any]) -> Content:
    for field, value in data.items():
        setattr(db_obj, field, value)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def delete(db: Session, *, db_obj: Content) -> None:
    db.delete(db_obj)
    db.commit()


def reorder(db: Session, *, owner_id: UUID, ordered_ids: Sequence[UUID]) -> List[Content]:
    """Persist a drag-and-drop order: position in ``ordered_ids`` becomes ``order``."""
    for position, cid in enumerate(ordered_ids):
        db.execute(
            update(Content)
            .where(Content.id == cid, Content.user_id == owner_id)
            .values(order=position)
            .execution_options(synchronize_session=False)
        )
    db.commit()
    db.expire_all()
    return list_for_owner(db, owner_id)


def increment_clicks(db: Session, *, db_obj: Content) -> Content:
    db.execute(
        update(Content)
        .where(Content.id == db_obj.id)
        .values(clicks=Content.clicks + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(db_obj)
    return db_obj
