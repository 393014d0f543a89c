"""Seed a development user with an active subscription and print a bearer token."""
import logging
import os

from tinypm.config import settings
from tinypm.core.security import create_access_token
from tinypm.crud import crud_subscription, crud_user
from tinypm.db.session import Database
from tinypm.models import Subscription, SubscriptionStatus, User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEV_EMAIL = os.getenv("DEV_USER_EMAIL", "dev@tiny.pm")
DEV_USERNAME = os.getenv("DEV_USERNAME", "devuser")


def init_db() -> None:
    if settings.is_production:
        raise SystemExit("Refusing to seed development data in production")

    database = Database.from_settings(settings)
    db = database.SessionLocal()
    try:
        user = crud_user.get_by_email(db, DEV_EMAIL)
        if not user:
            logger.info("Creating development user: %s", DEV_EMAIL)
            user = User(email=DEV_EMAIL, name="Dev User", username=DEV_USERNAME)
            db.add(user)
            db.commit()
            db.refresh(user)

        if not crud_subscription.get_for_user(db, user.id):
            logger.info("Creating active subscription for %s", DEV_EMAIL)
            db.add(Subscription(user_id=user.id, status=SubscriptionStatus.ACTIVE.value))
            db.commit()

        print(f"Bearer token for {user.email}:")
        print(create_access_token(str(user.id)))
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    init_db()
