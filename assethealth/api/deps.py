import secrets
from typing import Callable, Optional

from fastapi import Header, HTTPException, status
from sqlalchemy.orm import Session

from assethealth.alerts.notifiers import Notifier, get_notifier
from assethealth.core.config import settings
from assethealth.db.session import SessionLocal, get_db  # noqa: F401


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_alert_notifier() -> Notifier:
    return get_notifier()


def verify_api_key_dependency(
    x_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> bool:
    """
    Dependency to verify API key for internal endpoints
    """
    if not settings.REQUIRE_API_KEY:
        return True

    api_key = None
    if x_api_key:
        api_key = x_api_key
    elif authorization and authorization.startswith("Bearer "):
        api_key = authorization.split(" ", 1)[1]

    if not api_key or not any(secrets.compare_digest(api_key, k) for k in settings.VALID_API_KEYS):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return True
