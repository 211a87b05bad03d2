from datetime import datetime, timezone
from uuid import uuid4


def new_id() -> str:
    return str(uuid4())


def new_version(current=None) -> str:
    # mapper version_id_generator: receives the old token, returns a fresh one
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
