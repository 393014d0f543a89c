from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tinypm.api import deps
from tinypm.crud import crud_subscription
from tinypm.models.user import User
from tinypm.schemas.user import SubscriptionEnvelope, SubscriptionInfo

router = APIRouter()


@router.get("/subscription", response_model=SubscriptionEnvelope)
def read_subscription(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """The caller's subscription, or ``null`` if they never subscribed."""
    subscription = crud_subscription.get_for_user(db, current_user.id)
    if subscription is None:
        return SubscriptionEnvelope(subscription=None)
    return SubscriptionEnvelope(subscription=SubscriptionInfo.model_validate(subscription))
