# taskboard/routes/users.py
"""User registration and per-user settings."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from taskboard.auth import get_current_user
from taskboard.database import get_session
from taskboard.models import User, UserCreate, UserRead, UserSettings, UserSettingsUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/users", status_code=201)
def register_user(body: UserCreate, session: Session = Depends(get_session)) -> UserRead:
    """Create an owner record. Credentials are handled upstream."""
    existing = session.exec(select(User).where(User.email == body.email)).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")
    user = User.model_validate(body)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("User registered id=%s", user.id)
    return UserRead.model_validate(user)


@router.get("/settings")
def read_settings(user: User = Depends(get_current_user)) -> UserSettings:
    return UserSettings.model_validate(user)


@router.put("/settings")
def update_settings(
    body: UserSettingsUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> UserSettings:
    """Merge the provided settings. Unknown keys are ignored."""
    for key, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, key, value)
    session.add(user)
    session.commit()
    session.refresh(user)
    return UserSettings.model_validate(user)
