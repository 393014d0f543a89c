from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session
from tinypm.models.subscription import Subscription, SubscriptionStatus


def get_for_user(db: Session, user_id: UUID) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.user_id == user_id).first()


def get_active_for_user(db: Session, user_id: UUID) -> Optional[Subscription]:
    return db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.status == SubscriptionStatus.ACTIVE.value,
    ).first()
