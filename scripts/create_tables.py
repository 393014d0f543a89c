"""Create all database tables (development shortcut for `alembic upgrade head`)"""
import logging

from tinypm.config import settings
from tinypm.db.session import Database
# Import all models so they are registered with Base.metadata
from tinypm.models import Base

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_tables() -> None:
    database = Database.from_settings(settings)
    logger.info("Creating all database tables...")
    Base.metadata.create_all(bind=database.engine)
    logger.info("All tables created successfully!")
    database.dispose()


if __name__ == "__main__":
    create_tables()
