import uuid
from typing import Optional, Union


def parse_id(value: Union[str, uuid.UUID, None]) -> Optional[uuid.UUID]:
    """Path ids arrive as strings; anything that is not a UUID matches nothing."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None
